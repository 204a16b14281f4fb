"""Customer aggregate."""

import uuid
from dataclasses import dataclass, fields
from datetime import date, datetime, timezone

from card_onboarding.eligibility import (
    RANKING_MAX,
    RANKING_MIN,
    SCORE_MAX,
    SCORE_MIN,
    compute_aptitude,
    describe_ranking,
)
from card_onboarding.exceptions import ValidationError
from card_onboarding.models.base import Address
from card_onboarding.models.validators import validate_profile

# Written only by analysis and issuance results, never by registration
LIFECYCLE_FIELDS = (
    "score",
    "ranking",
    "ranking_updated_at",
    "analysis_requested_at",
    "analysis_failure_reason",
    "analysis_failed_at",
    "issuance_requested_at",
    "issuance_correlation_id",
    "issuance_idempotency_key",
    "issued_card_id",
    "issued_card_masked_number",
    "card_status",
    "card_issued_at",
    "issuance_failure_reason",
    "issuance_failed_at",
)


@dataclass
class Customer:
    """Bank customer going through credit onboarding.

    ``score`` and ``ranking`` only change through
    :meth:`apply_credit_analysis`; ``apt_for_card`` is derived from them
    on every read. Construction validates the profile, so use
    :meth:`create` to register a new customer.
    """

    customer_id: str
    name: str
    email: str
    phone: str
    document_id: str  # CPF
    address: Address
    created_at: datetime
    birth_date: date | None = None
    active: bool = True

    score: int = 0  # 0-1000
    ranking: int = 0  # 0-5
    ranking_updated_at: datetime | None = None

    analysis_requested_at: datetime | None = None
    analysis_failure_reason: str | None = None
    analysis_failed_at: datetime | None = None

    issuance_requested_at: datetime | None = None
    issuance_correlation_id: str | None = None
    issuance_idempotency_key: str | None = None
    issued_card_id: str | None = None
    issued_card_masked_number: str | None = None
    card_status: str | None = None
    card_issued_at: datetime | None = None
    issuance_failure_reason: str | None = None
    issuance_failed_at: datetime | None = None

    updated_at: datetime | None = None
    version: int = 0  # Managed by the store for compare-and-set

    def __post_init__(self) -> None:
        errors = validate_profile(
            self.name, self.email, self.phone, self.document_id, self.address
        )
        errors.extend(_credit_range_errors(self.score, self.ranking))
        if errors:
            raise ValidationError(errors)

    @classmethod
    def create(
        cls,
        name: str,
        email: str,
        phone: str,
        document_id: str,
        address: Address,
        birth_date: date | None = None,
        now: datetime | None = None,
    ) -> "Customer":
        """Register a new customer with a fresh id.

        Raises
        ------
        ValidationError
            With every invalid profile field.
        """
        return cls(
            customer_id=str(uuid.uuid4()),
            name=name,
            email=email,
            phone=phone,
            document_id=document_id,
            address=address,
            birth_date=birth_date,
            created_at=now or datetime.now(timezone.utc),
        )

    @property
    def apt_for_card(self) -> bool:
        return compute_aptitude(self.ranking, self.score)

    @property
    def ranking_description(self) -> str:
        return describe_ranking(self.ranking)

    def preset_lifecycle_fields(self) -> list[str]:
        """Names of lifecycle fields that differ from a fresh customer."""
        defaults = {f.name: f.default for f in fields(self)}
        return [name for name in LIFECYCLE_FIELDS if getattr(self, name) != defaults[name]]

    @property
    def analysis_blocked(self) -> bool:
        """A failed analysis newer than the last successful one blocks issuance."""
        if self.analysis_failed_at is None:
            return False
        return self.ranking_updated_at is None or self.analysis_failed_at > self.ranking_updated_at

    def age(self, today: date) -> int | None:
        """Age in whole years, or None when the birth date is unknown."""
        if self.birth_date is None:
            return None
        years = today.year - self.birth_date.year
        if (today.month, today.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years

    def update_profile(
        self,
        name: str,
        email: str,
        phone: str,
        address: Address,
        now: datetime,
    ) -> None:
        """Replace contact data. The document id never changes."""
        errors = validate_profile(name, email, phone, self.document_id, address)
        if errors:
            raise ValidationError(errors)
        self.name = name
        self.email = email
        self.phone = phone
        self.address = address
        self.updated_at = now

    def apply_credit_analysis(self, score: int, ranking: int, analyzed_at: datetime) -> None:
        """Overwrite score and ranking from an analysis result."""
        errors = _credit_range_errors(score, ranking)
        if errors:
            raise ValidationError(errors)
        self.score = score
        self.ranking = ranking
        self.ranking_updated_at = analyzed_at
        self.updated_at = analyzed_at

    def record_analysis_requested(self, requested_at: datetime) -> None:
        self.analysis_requested_at = requested_at
        self.updated_at = requested_at

    def record_analysis_failure(self, reason: str, failed_at: datetime) -> None:
        """Record a failed analysis. Score and ranking stay as they were."""
        self.analysis_failure_reason = reason
        self.analysis_failed_at = failed_at
        self.updated_at = failed_at

    def record_issuance_request(
        self,
        correlation_id: str,
        idempotency_key: str,
        requested_at: datetime,
    ) -> None:
        self.issuance_requested_at = requested_at
        self.issuance_correlation_id = correlation_id
        self.issuance_idempotency_key = idempotency_key
        self.updated_at = requested_at

    def record_card_issued(
        self,
        card_id: str,
        masked_number: str,
        status: str,
        issued_at: datetime,
    ) -> None:
        self.issued_card_id = card_id
        self.issued_card_masked_number = masked_number
        self.card_status = status
        self.card_issued_at = issued_at
        self.updated_at = issued_at

    def record_issuance_failure(self, reason: str, failed_at: datetime) -> None:
        self.issuance_failure_reason = reason
        self.issuance_failed_at = failed_at
        self.updated_at = failed_at

    def deactivate(self, now: datetime) -> None:
        """Customers are never deleted, only flagged inactive."""
        self.active = False
        self.updated_at = now


def _credit_range_errors(score: int, ranking: int) -> list[str]:
    errors = []
    if not SCORE_MIN <= score <= SCORE_MAX:
        errors.append(f"score must be between {SCORE_MIN} and {SCORE_MAX}, got {score}")
    if not RANKING_MIN <= ranking <= RANKING_MAX:
        errors.append(f"ranking must be between {RANKING_MIN} and {RANKING_MAX}, got {ranking}")
    return errors
