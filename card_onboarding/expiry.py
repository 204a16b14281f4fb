"""Credit analysis expiry.

The sweep that periodically re-requests analyses lives outside this
package; it only needs the predicate and the pending listing below.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from card_onboarding.models.financial import FinancialInformation


def is_analysis_expired(next_recommended_analysis_at: datetime | None, now: datetime) -> bool:
    """Return whether a new analysis is due."""
    if next_recommended_analysis_at is None:
        return True
    return now > next_recommended_analysis_at


def list_pending_analysis(
    infos: Iterable["FinancialInformation"],
    now: datetime,
) -> list["FinancialInformation"]:
    """Active financial records whose analysis is missing or expired.

    Ordered by due date, never-analysed records first.
    """
    pending = [
        info
        for info in infos
        if info.active and is_analysis_expired(info.next_recommended_analysis_at, now)
    ]
    return sorted(
        pending,
        key=lambda info: (
            info.next_recommended_analysis_at is not None,
            info.next_recommended_analysis_at or now,
        ),
    )
