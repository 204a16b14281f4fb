"""Financial information aggregate for a customer."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from card_onboarding import eligibility
from card_onboarding.exceptions import ValidationError
from card_onboarding.expiry import is_analysis_expired
from card_onboarding.models.card_types import CardTypeSet


@dataclass
class FinancialInformation:
    """Income, debts and last credit analysis of one customer.

    Created lazily, 1:1 with :class:`Customer`. ``next_recommended_analysis_at``
    is only ever derived by :meth:`register_analysis`; risk is derived by
    :attr:`is_at_risk` and never stored.
    """

    financial_id: str
    customer_id: str
    created_at: datetime
    income: Decimal = Decimal("0")
    proven_income: Decimal = Decimal("0")

    score: int = 0
    ranking: int = 0
    suggested_limit: Decimal = Decimal("0")
    active_limit: Decimal = Decimal("0")

    total_debt: Decimal = Decimal("0")
    open_credits_12m: int = 0
    delinquencies_12m: int = 0

    issued_card_types: CardTypeSet = field(default_factory=CardTypeSet)

    last_analysis_at: datetime | None = None
    next_recommended_analysis_at: datetime | None = None
    refusal_reason: str | None = None
    risk_narrative: str = ""
    recommendations: str = ""

    active: bool = True
    updated_at: datetime | None = None
    version: int = 0

    def __post_init__(self) -> None:
        errors = []
        if not self.customer_id:
            errors.append("customer_id must not be empty")
        errors.extend(_income_errors(self.income, self.proven_income))
        if errors:
            raise ValidationError(errors)

    @classmethod
    def create(
        cls,
        customer_id: str,
        income: Decimal,
        proven_income: Decimal,
        now: datetime,
    ) -> "FinancialInformation":
        return cls(
            financial_id=str(uuid.uuid4()),
            customer_id=customer_id,
            income=Decimal(income),
            proven_income=Decimal(proven_income),
            created_at=now,
        )

    @property
    def apt_for_card(self) -> bool:
        return eligibility.compute_aptitude(self.ranking, self.score)

    @property
    def ranking_description(self) -> str:
        return eligibility.describe_ranking(self.ranking)

    @property
    def payment_capacity(self) -> Decimal:
        return eligibility.payment_capacity(self.proven_income, self.income, self.total_debt)

    @property
    def is_at_risk(self) -> bool:
        return eligibility.is_at_risk(self.score, self.delinquencies_12m, self.payment_capacity)

    def analysis_expired(self, now: datetime) -> bool:
        return is_analysis_expired(self.next_recommended_analysis_at, now)

    def update_income(self, income: Decimal, proven_income: Decimal, now: datetime) -> None:
        income, proven_income = Decimal(income), Decimal(proven_income)
        errors = _income_errors(income, proven_income)
        if errors:
            raise ValidationError(errors)
        self.income = income
        self.proven_income = proven_income
        self.updated_at = now

    def update_debts(
        self,
        total_debt: Decimal,
        open_credits_12m: int,
        delinquencies_12m: int,
        now: datetime,
    ) -> None:
        total_debt = Decimal(total_debt)
        errors = []
        if total_debt < 0:
            errors.append("total_debt must not be negative")
        if open_credits_12m < 0:
            errors.append("open_credits_12m must not be negative")
        if delinquencies_12m < 0:
            errors.append("delinquencies_12m must not be negative")
        if errors:
            raise ValidationError(errors)
        self.total_debt = total_debt
        self.open_credits_12m = open_credits_12m
        self.delinquencies_12m = delinquencies_12m
        self.updated_at = now

    def register_analysis(
        self,
        score: int,
        ranking: int,
        suggested_limit: Decimal,
        now: datetime,
        refusal_reason: str | None = None,
        risk_narrative: str = "",
        recommendations: str = "",
    ) -> None:
        """Apply a credit analysis. Invalid input leaves every field untouched."""
        result = eligibility.register_analysis(
            score,
            ranking,
            suggested_limit,
            now,
            refusal_reason=refusal_reason,
            risk_narrative=risk_narrative,
            recommendations=recommendations,
        )
        self.score = result.score
        self.ranking = result.ranking
        self.suggested_limit = result.suggested_limit
        self.refusal_reason = result.refusal_reason
        self.risk_narrative = result.risk_narrative
        self.recommendations = result.recommendations
        self.last_analysis_at = result.last_analysis_at
        self.next_recommended_analysis_at = result.next_recommended_analysis_at
        self.updated_at = now

    def approve_limit(self, requested: Decimal, now: datetime) -> Decimal:
        """Activate a limit no greater than the suggested one.

        A later drop of ``suggested_limit`` does not touch an already
        approved ``active_limit``.
        """
        self.active_limit = eligibility.approve_limit(requested, self.suggested_limit)
        self.updated_at = now
        return self.active_limit

    def record_card_issued(self, card_type: str, now: datetime) -> None:
        self.issued_card_types.add(card_type)
        self.updated_at = now


def _income_errors(income: Decimal, proven_income: Decimal) -> list[str]:
    errors = []
    if income < 0:
        errors.append("income must not be negative")
    if proven_income < 0:
        errors.append("proven_income must not be negative")
    return errors
