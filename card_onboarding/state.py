"""Credit state derivation.

The lifecycle is never stored; it is read off the customer's fields:

==  ==========================================================  ==================
#   condition (first match wins)                                state
==  ==========================================================  ==================
1   card issued at/after the latest request, not superseded     ISSUED
2   issuance failed at/after the latest request                 ISSUANCE_FAILED
3   issuance requested                                          ISSUANCE_REQUESTED
4   analysis failure newer than the last successful analysis    ANALYSIS_FAILED
5   analysed and apt                                            ANALYZED_APT
6   analysed                                                    ANALYZED_NOT_APT
7   analysis requested                                          ANALYSIS_PENDING
8   otherwise                                                   REGISTERED
==  ==========================================================  ==================
"""

from datetime import datetime

from card_onboarding.models.customer import Customer
from card_onboarding.models.enums import CreditState


def derive_credit_state(customer: Customer) -> CreditState:
    """Compute the credit lifecycle state of a customer."""
    requested_at = customer.issuance_requested_at
    issued_at = _outcome_for_request(customer.card_issued_at, requested_at)
    failed_at = _outcome_for_request(customer.issuance_failed_at, requested_at)

    if issued_at is not None and (failed_at is None or issued_at >= failed_at):
        return CreditState.ISSUED
    if failed_at is not None:
        return CreditState.ISSUANCE_FAILED
    if requested_at is not None:
        return CreditState.ISSUANCE_REQUESTED

    if customer.analysis_blocked:
        return CreditState.ANALYSIS_FAILED
    if customer.ranking_updated_at is not None:
        return CreditState.ANALYZED_APT if customer.apt_for_card else CreditState.ANALYZED_NOT_APT
    if customer.analysis_requested_at is not None:
        return CreditState.ANALYSIS_PENDING
    return CreditState.REGISTERED


def _outcome_for_request(
    outcome_at: datetime | None,
    requested_at: datetime | None,
) -> datetime | None:
    """Drop an issuance outcome that predates the latest request."""
    if outcome_at is None:
        return None
    if requested_at is not None and outcome_at < requested_at:
        return None
    return outcome_at
