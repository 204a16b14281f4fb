"""Credit eligibility rules.

Pure functions over score, ranking and financial figures. Nothing here
touches storage or the broker; callers persist whatever is returned.

Two thresholds coexist on purpose:

- aptitude: ``ranking >= 3 and score >= 600``
- issuance gate: aptitude and ``score >= 501``

They are kept as separate constants and must not be merged.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from card_onboarding.exceptions import ValidationError

SCORE_MIN = 0
SCORE_MAX = 1000
RANKING_MIN = 0
RANKING_MAX = 5

APTITUDE_MIN_RANKING = 3
APTITUDE_MIN_SCORE = 600

ISSUANCE_MIN_SCORE = 501
LIMIT_PER_SCORE_POINT = 10

RISK_SCORE_THRESHOLD = 600
RISK_DELINQUENCY_THRESHOLD = 3

CAPACITY_INCOME_SHARE = Decimal("0.30")
CENTS = Decimal("0.01")

RANKING_DESCRIPTIONS = {
    0: "unrated",
    1: "very poor",
    2: "poor",
    3: "acceptable",
    4: "good",
    5: "excellent",
}

# Worse ranking, shorter re-check interval.
ANALYSIS_INTERVAL_DAYS = {
    5: 365,
    4: 270,
    3: 180,
    2: 90,
    1: 30,
}
DEFAULT_ANALYSIS_INTERVAL_DAYS = 15


@dataclass(frozen=True)
class AnalysisResult:
    """Field values produced by a successful credit analysis."""

    score: int
    ranking: int
    suggested_limit: Decimal
    apt_for_card: bool
    last_analysis_at: datetime
    next_recommended_analysis_at: datetime
    refusal_reason: str | None = None
    risk_narrative: str = ""
    recommendations: str = ""


def compute_aptitude(ranking: int, score: int) -> bool:
    """Return whether a ranking/score pair qualifies for a card."""
    return ranking >= APTITUDE_MIN_RANKING and score >= APTITUDE_MIN_SCORE


def describe_ranking(ranking: int) -> str:
    """Map a ranking to its label.

    Raises
    ------
    ValidationError
        If ``ranking`` is outside 0-5.
    """
    try:
        return RANKING_DESCRIPTIONS[ranking]
    except KeyError:
        raise ValidationError(
            f"ranking must be between {RANKING_MIN} and {RANKING_MAX}, got {ranking}"
        ) from None


def next_analysis_due_date(ranking: int, now: datetime) -> datetime:
    """Date of the next mandatory re-analysis for a ranking."""
    days = ANALYSIS_INTERVAL_DAYS.get(ranking, DEFAULT_ANALYSIS_INTERVAL_DAYS)
    return now + timedelta(days=days)


def payment_capacity(proven_income: Decimal, income: Decimal, total_debt: Decimal) -> Decimal:
    """Monthly payment capacity, floored at zero.

    Uses 30% of proven income, falling back to declared income when
    nothing has been proven, minus the monthly share of total debt.
    """
    base_income = proven_income if proven_income > 0 else income
    capacity = CAPACITY_INCOME_SHARE * Decimal(base_income) - Decimal(total_debt) / 12
    return max(Decimal("0"), capacity).quantize(CENTS, rounding=ROUND_HALF_UP)


def is_at_risk(score: int, delinquencies_12m: int, capacity: Decimal) -> bool:
    """Return whether a customer is in a risk situation."""
    return (
        score < RISK_SCORE_THRESHOLD
        or delinquencies_12m >= RISK_DELINQUENCY_THRESHOLD
        # payment_capacity never goes negative; kept for alternate formulas
        or capacity < 0
    )


def validate_analysis(score: int, ranking: int, suggested_limit: Decimal) -> list[str]:
    """Collect every range problem of an analysis result."""
    errors = []
    if not SCORE_MIN <= score <= SCORE_MAX:
        errors.append(f"score must be between {SCORE_MIN} and {SCORE_MAX}, got {score}")
    if not RANKING_MIN <= ranking <= RANKING_MAX:
        errors.append(f"ranking must be between {RANKING_MIN} and {RANKING_MAX}, got {ranking}")
    if suggested_limit < 0:
        errors.append(f"suggested_limit must not be negative, got {suggested_limit}")
    return errors


def register_analysis(
    score: int,
    ranking: int,
    suggested_limit: Decimal,
    now: datetime,
    refusal_reason: str | None = None,
    risk_narrative: str = "",
    recommendations: str = "",
) -> AnalysisResult:
    """Validate an analysis and derive the fields to persist.

    Parameters
    ----------
    score : int
        Credit score, 0-1000.
    ranking : int
        Credit ranking, 0-5.
    suggested_limit : Decimal
        Limit suggested by the analysis service, non-negative.
    now : datetime
        Analysis clock; drives ``last_analysis_at`` and the next due date.

    Returns
    -------
    AnalysisResult
        New field values.

    Raises
    ------
    ValidationError
        With every violated range when the input is invalid.
    """
    suggested_limit = Decimal(suggested_limit)
    errors = validate_analysis(score, ranking, suggested_limit)
    if errors:
        raise ValidationError(errors)

    return AnalysisResult(
        score=score,
        ranking=ranking,
        suggested_limit=suggested_limit,
        apt_for_card=compute_aptitude(ranking, score),
        last_analysis_at=now,
        next_recommended_analysis_at=next_analysis_due_date(ranking, now),
        refusal_reason=refusal_reason,
        risk_narrative=risk_narrative,
        recommendations=recommendations,
    )


def approve_limit(requested: Decimal, suggested_limit: Decimal) -> Decimal:
    """Validate a limit approval against the suggested limit."""
    requested = Decimal(requested)
    if requested <= 0:
        raise ValidationError(f"approved limit must be greater than zero, got {requested}")
    if requested > suggested_limit:
        raise ValidationError(
            f"approved limit {requested} exceeds suggested limit {suggested_limit}"
        )
    return requested


def can_request_issuance(apt_for_card: bool, score: int) -> bool:
    """Issuance gate. Distinct from, and applied on top of, aptitude."""
    return apt_for_card and score >= ISSUANCE_MIN_SCORE


def issuance_card_count(score: int) -> int:
    return 2 if score >= ISSUANCE_MIN_SCORE else 1


def limit_per_card(score: int, card_count: int) -> Decimal:
    """Split the total limit (score * 10) evenly across cards."""
    total = Decimal(score * LIMIT_PER_SCORE_POINT)
    return (total / card_count).quantize(CENTS, rounding=ROUND_HALF_UP)
