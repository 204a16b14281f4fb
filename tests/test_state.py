"""Tests for credit state derivation."""

from datetime import datetime, timedelta

from card_onboarding.models import CreditState, Customer
from card_onboarding.state import derive_credit_state


class TestDeriveCreditState:
    """One test per row of the derivation table."""

    def test_registered(self, customer: Customer) -> None:
        assert derive_credit_state(customer) == CreditState.REGISTERED

    def test_analysis_pending(self, customer: Customer, now: datetime) -> None:
        customer.record_analysis_requested(now)

        assert derive_credit_state(customer) == CreditState.ANALYSIS_PENDING

    def test_analyzed_apt(self, customer: Customer, now: datetime) -> None:
        customer.record_analysis_requested(now)
        customer.apply_credit_analysis(700, 4, now + timedelta(minutes=1))

        assert derive_credit_state(customer) == CreditState.ANALYZED_APT

    def test_analyzed_not_apt(self, customer: Customer, now: datetime) -> None:
        customer.apply_credit_analysis(550, 4, now)

        assert derive_credit_state(customer) == CreditState.ANALYZED_NOT_APT

    def test_analysis_failed(self, customer: Customer, now: datetime) -> None:
        customer.record_analysis_requested(now)
        customer.record_analysis_failure("Bureau timeout", now + timedelta(minutes=1))

        assert derive_credit_state(customer) == CreditState.ANALYSIS_FAILED

    def test_failure_superseded_by_later_analysis(self, customer: Customer, now: datetime) -> None:
        customer.record_analysis_failure("Bureau timeout", now)
        customer.apply_credit_analysis(700, 4, now + timedelta(hours=1))

        assert derive_credit_state(customer) == CreditState.ANALYZED_APT

    def test_older_failure_does_not_block(self, customer: Customer, now: datetime) -> None:
        customer.apply_credit_analysis(700, 4, now)
        customer.record_analysis_failure("Late timeout", now - timedelta(hours=1))

        assert derive_credit_state(customer) == CreditState.ANALYZED_APT

    def test_issuance_requested(self, customer: Customer, now: datetime) -> None:
        customer.apply_credit_analysis(700, 4, now)
        customer.record_issuance_request("corr-1", "key-1", now + timedelta(minutes=1))

        assert derive_credit_state(customer) == CreditState.ISSUANCE_REQUESTED

    def test_issued(self, customer: Customer, now: datetime) -> None:
        customer.apply_credit_analysis(700, 4, now)
        customer.record_issuance_request("corr-1", "key-1", now)
        customer.record_card_issued("card-1", "**** 1234", "ISSUED", now + timedelta(hours=1))

        assert derive_credit_state(customer) == CreditState.ISSUED

    def test_issuance_failed(self, customer: Customer, now: datetime) -> None:
        customer.apply_credit_analysis(700, 4, now)
        customer.record_issuance_request("corr-1", "key-1", now)
        customer.record_issuance_failure("Embossing error", now + timedelta(hours=1))

        assert derive_credit_state(customer) == CreditState.ISSUANCE_FAILED

    def test_new_request_supersedes_old_outcome(self, customer: Customer, now: datetime) -> None:
        customer.apply_credit_analysis(700, 4, now)
        customer.record_issuance_request("corr-1", "key-1", now)
        customer.record_issuance_failure("Embossing error", now + timedelta(hours=1))
        customer.record_issuance_request("corr-2", "key-2", now + timedelta(hours=2))

        assert derive_credit_state(customer) == CreditState.ISSUANCE_REQUESTED

    def test_issued_after_earlier_failure(self, customer: Customer, now: datetime) -> None:
        customer.record_issuance_request("corr-1", "key-1", now)
        customer.record_issuance_failure("Embossing error", now + timedelta(hours=1))
        customer.record_card_issued("card-1", "**** 1234", "ISSUED", now + timedelta(hours=2))

        assert derive_credit_state(customer) == CreditState.ISSUED

    def test_issuance_outcome_wins_over_analysis_state(
        self, customer: Customer, now: datetime
    ) -> None:
        customer.record_issuance_request("corr-1", "key-1", now)
        customer.record_analysis_failure("Bureau timeout", now + timedelta(hours=1))

        assert derive_credit_state(customer) == CreditState.ISSUANCE_REQUESTED
