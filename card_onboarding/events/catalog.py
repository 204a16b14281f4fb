"""Integration event catalog.

Outbound (published here): :class:`CustomerRegistered`,
:class:`CardIssuanceRequested`.

Inbound (consumed here): :class:`CreditAnalysisCompleted`,
:class:`CreditAnalysisFailed`, :class:`CardIssued`,
:class:`CardIssuanceFailed`. Each inbound type validates its payload in
``from_message`` and raises :class:`EventValidationError` listing every
problem found.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar

from card_onboarding.eligibility import SCORE_MAX, SCORE_MIN
from card_onboarding.events.serialization import dataclass_to_dict, parse_datetime
from card_onboarding.exceptions import EventValidationError
from card_onboarding.models.base import Event

ANALYSIS_RANKING_MIN = 1
ANALYSIS_RANKING_MAX = 5
IDEMPOTENCY_KEY_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class IntegrationEvent:
    """Immutable event identified by a correlation id."""

    EVENT_TYPE: ClassVar[str] = "IntegrationEvent"

    correlation_id: str
    customer_id: str

    def to_payload(self) -> dict:
        return dataclass_to_dict(self)

    def to_envelope(self, source: str, now: datetime) -> Event:
        """Wrap the payload in the standard wire envelope."""
        return Event(
            event_id=str(uuid.uuid4()),
            event_type=self.EVENT_TYPE,
            event_time=now,
            source=source,
            subject=self.customer_id,
            correlation_id=self.correlation_id,
            data=self.to_payload(),
        )


# Outbound


@dataclass(frozen=True)
class CustomerRegistered(IntegrationEvent):
    """A customer was created; asks the analysis service for a score."""

    EVENT_TYPE: ClassVar[str] = "CustomerRegistered"

    name: str
    document_id: str
    email: str
    estimated_income: Decimal
    age: int
    credit_history_hint: str
    birth_date: date


@dataclass(frozen=True)
class DeliveryAddress:
    street: str
    city: str
    state: str
    postal_code: str
    number: str = ""
    complement: str = ""


@dataclass(frozen=True)
class CardIssuanceRequested(IntegrationEvent):
    """Card issuance order for the issuance service."""

    EVENT_TYPE: ClassVar[str] = "CardIssuanceRequested"

    proposal_id: str
    account_id: str
    product_code: str
    card_count: int
    limit_per_card: Decimal
    idempotency_key: str
    delivery_address: DeliveryAddress
    delivery_method: str
    requested_at: datetime


def idempotency_key(customer_id: str, at: datetime) -> str:
    """Key the issuance service deduplicates retried requests on.

    Second resolution: two requests within the same second collapse.
    """
    return f"{customer_id}_{at.strftime(IDEMPOTENCY_KEY_FORMAT)}"


# Inbound


@dataclass(frozen=True)
class CreditAnalysisCompleted(IntegrationEvent):
    EVENT_TYPE: ClassVar[str] = "CreditAnalysisCompleted"

    score: int
    ranking: int
    reason: str
    analyzed_at: datetime
    eligible: bool = False
    credit_limit: Decimal = Decimal("0")
    max_cards: int = 0

    @classmethod
    def from_message(
        cls,
        message: dict,
        received_at: datetime | None = None,
    ) -> "CreditAnalysisCompleted":
        """Validate an analysis result.

        A missing ``analyzed_at`` falls back to the envelope's
        ``event_time``, then to ``received_at``.
        """
        reader = _PayloadReader(message)
        score = reader.integer("score")
        ranking = reader.integer("ranking")
        if score is not None and not SCORE_MIN <= score <= SCORE_MAX:
            reader.errors.append(f"score must be between {SCORE_MIN} and {SCORE_MAX}, got {score}")
        if ranking is not None and not ANALYSIS_RANKING_MIN <= ranking <= ANALYSIS_RANKING_MAX:
            reader.errors.append(
                f"ranking must be between {ANALYSIS_RANKING_MIN} and {ANALYSIS_RANKING_MAX}, got {ranking}"
            )
        credit_limit = reader.decimal("credit_limit", default=Decimal("0"))
        if credit_limit is not None and credit_limit < 0:
            reader.errors.append("credit_limit must not be negative")
        if reader.payload.get("analyzed_at") is None:
            analyzed_at = reader.fallback_time(received_at)
        else:
            analyzed_at = reader.timestamp("analyzed_at")
        event = dict(
            score=score,
            ranking=ranking,
            reason=reader.text("reason"),
            analyzed_at=analyzed_at,
            eligible=reader.boolean("eligible", default=False),
            credit_limit=credit_limit,
            max_cards=reader.integer("max_cards", default=0),
        )
        return cls(**reader.finish(), **event)


@dataclass(frozen=True)
class CreditAnalysisFailed(IntegrationEvent):
    EVENT_TYPE: ClassVar[str] = "CreditAnalysisFailed"

    reason: str
    attempted_at: datetime
    can_retry: bool = True

    @classmethod
    def from_message(cls, message: dict) -> "CreditAnalysisFailed":
        reader = _PayloadReader(message)
        event = dict(
            reason=reader.text("reason"),
            attempted_at=reader.timestamp("attempted_at"),
            can_retry=reader.boolean("can_retry", default=True),
        )
        return cls(**reader.finish(), **event)


@dataclass(frozen=True)
class CardIssued(IntegrationEvent):
    EVENT_TYPE: ClassVar[str] = "CardIssued"

    card_id: str
    masked_number: str
    issued_at: datetime
    status: str = "ISSUED"
    product_code: str | None = None

    @classmethod
    def from_message(cls, message: dict) -> "CardIssued":
        reader = _PayloadReader(message)
        event = dict(
            card_id=reader.text("card_id"),
            masked_number=reader.text("masked_number"),
            issued_at=reader.timestamp("issued_at"),
            status=reader.text("status", default="ISSUED"),
            product_code=reader.text("product_code", default=None),
        )
        return cls(**reader.finish(), **event)


@dataclass(frozen=True)
class CardIssuanceFailed(IntegrationEvent):
    EVENT_TYPE: ClassVar[str] = "CardIssuanceFailed"

    reason: str
    attempted_at: datetime

    @classmethod
    def from_message(cls, message: dict) -> "CardIssuanceFailed":
        reader = _PayloadReader(message)
        event = dict(
            reason=reader.text("reason"),
            attempted_at=reader.timestamp("attempted_at"),
        )
        return cls(**reader.finish(), **event)


INBOUND_EVENTS: dict[str, type[IntegrationEvent]] = {
    cls.EVENT_TYPE: cls
    for cls in (CreditAnalysisCompleted, CreditAnalysisFailed, CardIssued, CardIssuanceFailed)
}

_MISSING = object()


class _PayloadReader:
    """Pull typed fields out of a message, collecting every error.

    Accepts either the wire envelope (fields under ``data``) or a flat
    payload.
    """

    def __init__(self, message: Any) -> None:
        self.errors: list[str] = []
        if not isinstance(message, dict):
            raise EventValidationError("message must be a JSON object")
        self.message = message
        data = message.get("data")
        self.payload = data if isinstance(data, dict) else message
        self.correlation_id = (
            message.get("correlation_id")
            or self.payload.get("correlation_id")
            or message.get("event_id")
            or str(uuid.uuid4())
        )

    def fallback_time(self, received_at: datetime | None) -> datetime | None:
        """Envelope event_time, else ``received_at``, for a missing timestamp."""
        value = self.message.get("event_time")
        if value is not None:
            try:
                return parse_datetime(value)
            except (TypeError, ValueError):
                self.errors.append("event_time must be an ISO-8601 timestamp")
                return None
        if received_at is None:
            self.errors.append("analyzed_at is required")
        return received_at

    def finish(self) -> dict:
        customer_id = self.text("customer_id")
        if self.errors:
            raise EventValidationError(self.errors)
        return {"correlation_id": str(self.correlation_id), "customer_id": customer_id}

    def _get(self, name: str, default: Any) -> tuple[bool, Any]:
        value = self.payload.get(name)
        if value is None:
            if default is _MISSING:
                self.errors.append(f"{name} is required")
                return False, None
            return False, default
        return True, value

    def text(self, name: str, default: Any = _MISSING) -> Any:
        present, value = self._get(name, default)
        if not present:
            return value
        if not isinstance(value, str) or not value.strip():
            self.errors.append(f"{name} must be a non-empty string")
            return None
        return value.strip()

    def integer(self, name: str, default: Any = _MISSING) -> Any:
        present, value = self._get(name, default)
        if not present:
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            self.errors.append(f"{name} must be an integer")
            return None
        return value

    def boolean(self, name: str, default: Any = _MISSING) -> Any:
        present, value = self._get(name, default)
        if not present:
            return value
        if not isinstance(value, bool):
            self.errors.append(f"{name} must be a boolean")
            return None
        return value

    def decimal(self, name: str, default: Any = _MISSING) -> Any:
        present, value = self._get(name, default)
        if not present:
            return value
        try:
            if isinstance(value, bool):
                raise InvalidOperation
            number = Decimal(str(value))
        except (InvalidOperation, ValueError):
            number = None
        if number is None or not number.is_finite():
            self.errors.append(f"{name} must be a decimal number")
            return None
        return number

    def timestamp(self, name: str, default: Any = _MISSING) -> Any:
        present, value = self._get(name, default)
        if not present:
            return value
        try:
            return parse_datetime(value)
        except (TypeError, ValueError):
            self.errors.append(f"{name} must be an ISO-8601 timestamp")
            return None
