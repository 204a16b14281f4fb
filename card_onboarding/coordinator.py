"""Choreography between onboarding, credit analysis and card issuance.

Outbound:
    register_customer       -> CustomerRegistered (best effort)
    request_card_issuance   -> CardIssuanceRequested (must succeed)

Inbound handlers (idempotent, last write wins):
    handle_analysis_completed, handle_analysis_failed,
    handle_card_issued, handle_card_issuance_failed

Inbound handlers raise on malformed payloads so the broker can
dead-letter them, and drop messages for unknown customers with a
warning. Every aggregate change is written with one compare-and-set,
and an unchanged aggregate is not written at all, so redelivering a
message leaves the stored state exactly as it was.
"""

import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable

from card_onboarding import eligibility
from card_onboarding.config import OnboardingConfig
from card_onboarding.events import (
    CardIssuanceFailed,
    CardIssuanceRequested,
    CardIssued,
    CreditAnalysisCompleted,
    CreditAnalysisFailed,
    CustomerRegistered,
    DeliveryAddress,
    IntegrationEvent,
    idempotency_key,
)
from card_onboarding.events.serialization import envelope_to_dict
from card_onboarding.exceptions import (
    CustomerNotFoundError,
    EntityNotFoundError,
    NotEligibleError,
    PublishError,
    ValidationError,
)
from card_onboarding.messaging.base import Handler, MessageBroker
from card_onboarding.models import (
    Customer,
    CreditHistory,
    CreditState,
    FinancialInformation,
    IssuanceStatus,
)
from card_onboarding.state import derive_credit_state
from card_onboarding.store import CustomerStore

logger = logging.getLogger(__name__)

DEFAULT_AGE = 30


@dataclass(frozen=True)
class IssuanceRequestResult:
    """Outcome of an accepted card issuance request."""

    customer_id: str
    correlation_id: str
    idempotency_key: str
    card_count: int
    limit_per_card: Decimal
    total_limit: Decimal
    requested_at: datetime
    status: IssuanceStatus = IssuanceStatus.PROCESSING


@dataclass(frozen=True)
class CardEligibility:
    """Read model answering "can this customer ask for a card now?"."""

    customer_id: str
    name: str
    eligible: bool
    apt_for_card: bool
    score: int
    ranking: int
    ranking_description: str
    status: IssuanceStatus
    eligible_card_count: int
    reason: str
    last_analysis_at: datetime | None
    state: CreditState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChoreographyCoordinator:
    """Drives the credit lifecycle of customers through integration events."""

    def __init__(
        self,
        store: CustomerStore,
        broker: MessageBroker,
        config: OnboardingConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.broker = broker
        self.config = config or OnboardingConfig()
        self.clock = clock

    # Outbound

    def register_customer(
        self,
        customer: Customer,
        estimated_income: Decimal = Decimal("0"),
        proven_income: Decimal = Decimal("0"),
        credit_history: CreditHistory | str = CreditHistory.REGULAR,
    ) -> Customer:
        """Store a new customer and ask the analysis service to score it.

        The registration event is best effort: when the broker is down the
        customer is still created and returned, only without a pending
        analysis. Nothing retries the publish later.

        Raises
        ------
        ValidationError
            Unknown credit history, or a customer that already carries
            analysis or issuance data.
        """
        try:
            history = CreditHistory(credit_history)
        except ValueError:
            raise ValidationError(
                f"credit_history must be one of {[h.value for h in CreditHistory]}"
            ) from None
        preset = customer.preset_lifecycle_fields()
        if preset:
            raise ValidationError(
                [f"{name} is set by credit analysis or issuance, not registration" for name in preset]
            )

        now = self.clock()
        info = FinancialInformation.create(customer.customer_id, estimated_income, proven_income, now)
        customer = copy.deepcopy(customer)
        customer.analysis_requested_at = now
        stored = self.store.add_customer(customer)
        self.store.add_financial(info)

        event = self._registration_event(stored, info.income, history, now)
        topic = self.config.topics.customer_registered
        try:
            published = self._publish(topic, event, now)
        except Exception:
            logger.warning(
                "Could not publish registration of customer %s, analysis not requested",
                stored.customer_id,
                exc_info=True,
                extra={"extra": {"customer_id": stored.customer_id}},
            )
            published = False
        else:
            if not published:
                logger.warning(
                    "Registration of customer %s was not delivered to %s, analysis not requested",
                    stored.customer_id,
                    topic,
                    extra={"extra": {"customer_id": stored.customer_id}},
                )

        if not published:
            original = copy.deepcopy(stored)
            stored.analysis_requested_at = None
            return self._save_customer(original, stored)

        logger.info(
            "Customer %s registered, analysis requested (income=%s, age=%d)",
            stored.customer_id,
            event.estimated_income,
            event.age,
            extra={"extra": {"customer_id": stored.customer_id, "correlation_id": event.correlation_id}},
        )
        return stored

    def request_card_issuance(self, customer_id: str) -> IssuanceRequestResult:
        """Ask the issuance service to issue cards for an eligible customer.

        Raises
        ------
        CustomerNotFoundError
            Unknown customer id.
        NotEligibleError
            Customer fails the issuance gate (``reason == "not_eligible"``).
        PublishError
            Broker unreachable or publish timed out
            (``reason == "transport_failure"``).
        """
        customer = self._require_customer(customer_id)
        refusal = self._issuance_refusal(customer)
        if refusal:
            logger.info("Issuance refused for customer %s: %s", customer_id, refusal)
            raise NotEligibleError(refusal)

        now = self.clock()
        card_count = eligibility.issuance_card_count(customer.score)
        per_card = eligibility.limit_per_card(customer.score, card_count)
        event = CardIssuanceRequested(
            correlation_id=str(uuid.uuid4()),
            customer_id=customer.customer_id,
            proposal_id=str(uuid.uuid4()),
            # No account service integration yet; the issuance service opens one per proposal
            account_id=str(uuid.uuid4()),
            product_code=self.config.product_code,
            card_count=card_count,
            limit_per_card=per_card,
            idempotency_key=idempotency_key(customer.customer_id, now),
            delivery_address=DeliveryAddress(
                street=customer.address.street,
                number=customer.address.number,
                complement=customer.address.complement,
                city=customer.address.city,
                state=customer.address.state,
                postal_code=customer.address.postal_code,
            ),
            delivery_method=self.config.delivery_method,
            requested_at=now,
        )

        topic = self.config.topics.card_issuance_requested
        try:
            published = self._publish(topic, event, now)
        except Exception as exc:
            logger.error("Issuance request for customer %s failed: %s", customer_id, exc)
            raise PublishError(f"Could not publish issuance request: {exc}") from exc
        if not published:
            logger.error("Issuance request for customer %s was not delivered", customer_id)
            raise PublishError("Could not publish issuance request: broker unavailable")

        original = copy.deepcopy(customer)
        customer.record_issuance_request(event.correlation_id, event.idempotency_key, now)
        self._save_customer(original, customer)

        logger.info(
            "Issuance requested for customer %s: cards=%d, limit per card=%s",
            customer_id,
            card_count,
            per_card,
            extra={"extra": {"customer_id": customer_id, "correlation_id": event.correlation_id}},
        )
        return IssuanceRequestResult(
            customer_id=customer_id,
            correlation_id=event.correlation_id,
            idempotency_key=event.idempotency_key,
            card_count=card_count,
            limit_per_card=per_card,
            total_limit=per_card * card_count,
            requested_at=now,
        )

    # Inbound

    def handle_analysis_completed(self, message: dict) -> Customer | None:
        """Apply a credit analysis result to the customer and its finances."""
        event = CreditAnalysisCompleted.from_message(message, received_at=self.clock())
        customer = self._find_customer(event)
        if customer is None:
            return None

        original = copy.deepcopy(customer)
        customer.apply_credit_analysis(event.score, event.ranking, event.analyzed_at)
        customer = self._save_customer(original, customer)

        info = self.store.get_financial(event.customer_id)
        created = info is None
        if created:
            info = FinancialInformation.create(
                event.customer_id, Decimal("0"), Decimal("0"), event.analyzed_at
            )
        original_info = copy.deepcopy(info)
        # The event timestamp is the analysis clock, which keeps redelivery a no-op
        info.register_analysis(
            event.score,
            event.ranking,
            event.credit_limit,
            event.analyzed_at,
            refusal_reason=None if event.eligible else event.reason,
            risk_narrative=event.reason,
        )
        if created:
            self.store.add_financial(info)
        else:
            self._save_financial(original_info, info)

        logger.info(
            "Credit analysis applied to customer %s: score=%d, ranking=%d, apt=%s",
            event.customer_id,
            customer.score,
            customer.ranking,
            customer.apt_for_card,
            extra={"extra": {"customer_id": event.customer_id, "correlation_id": event.correlation_id}},
        )
        return customer

    def handle_analysis_failed(self, message: dict) -> Customer | None:
        """Record a failed analysis; blocks issuance until a later success."""
        event = CreditAnalysisFailed.from_message(message)
        customer = self._find_customer(event)
        if customer is None:
            return None

        original = copy.deepcopy(customer)
        customer.record_analysis_failure(event.reason, event.attempted_at)
        customer = self._save_customer(original, customer)
        logger.info(
            "Credit analysis failed for customer %s: %s (retry allowed: %s)",
            event.customer_id,
            event.reason,
            event.can_retry,
        )
        return customer

    def handle_card_issued(self, message: dict) -> Customer | None:
        event = CardIssued.from_message(message)
        customer = self._find_customer(event)
        if customer is None:
            return None

        original = copy.deepcopy(customer)
        customer.record_card_issued(event.card_id, event.masked_number, event.status, event.issued_at)
        customer = self._save_customer(original, customer)

        if event.product_code:
            info = self.store.get_financial(event.customer_id)
            if info is not None:
                original_info = copy.deepcopy(info)
                info.record_card_issued(event.product_code, event.issued_at)
                self._save_financial(original_info, info)

        logger.info(
            "Card %s issued for customer %s (%s)",
            event.masked_number,
            event.customer_id,
            event.status,
        )
        return customer

    def handle_card_issuance_failed(self, message: dict) -> Customer | None:
        event = CardIssuanceFailed.from_message(message)
        customer = self._find_customer(event)
        if customer is None:
            return None

        original = copy.deepcopy(customer)
        customer.record_issuance_failure(event.reason, event.attempted_at)
        customer = self._save_customer(original, customer)
        logger.info("Card issuance failed for customer %s: %s", event.customer_id, event.reason)
        return customer

    def handlers(self) -> dict[str, Handler]:
        """Inbound topic to handler mapping."""
        topics = self.config.topics
        return {
            topics.analysis_completed: self.handle_analysis_completed,
            topics.analysis_failed: self.handle_analysis_failed,
            topics.card_issued: self.handle_card_issued,
            topics.card_issuance_failed: self.handle_card_issuance_failed,
        }

    def subscribe(self, broker: MessageBroker | None = None) -> None:
        broker = broker or self.broker
        for topic, handler in self.handlers().items():
            broker.subscribe(topic, handler)

    # Financial data

    def submit_financial_data(
        self,
        customer_id: str,
        income: Decimal,
        proven_income: Decimal,
    ) -> FinancialInformation:
        """Create or update income figures for a customer."""
        self._require_customer(customer_id)
        now = self.clock()
        info = self.store.get_financial(customer_id)
        if info is None:
            return self.store.add_financial(
                FinancialInformation.create(customer_id, income, proven_income, now)
            )
        original = copy.deepcopy(info)
        info.update_income(income, proven_income, now)
        return self._save_financial(original, info)

    def update_debts(
        self,
        customer_id: str,
        total_debt: Decimal,
        open_credits_12m: int,
        delinquencies_12m: int,
    ) -> FinancialInformation:
        self._require_customer(customer_id)
        now = self.clock()
        info = self.store.get_financial(customer_id)
        if info is None:
            info = self.store.add_financial(
                FinancialInformation.create(customer_id, Decimal("0"), Decimal("0"), now)
            )
        original = copy.deepcopy(info)
        info.update_debts(total_debt, open_credits_12m, delinquencies_12m, now)
        return self._save_financial(original, info)

    def approve_credit_limit(self, customer_id: str, amount: Decimal) -> Decimal:
        """Activate a credit limit within the suggested one."""
        info = self.store.get_financial(customer_id)
        if info is None:
            raise EntityNotFoundError(f"No financial information for customer {customer_id}")
        original = copy.deepcopy(info)
        approved = info.approve_limit(amount, self.clock())
        self._save_financial(original, info)
        logger.info("Credit limit %s approved for customer %s", approved, customer_id)
        return approved

    # Queries

    def credit_state(self, customer_id: str) -> CreditState:
        return derive_credit_state(self._require_customer(customer_id))

    def card_eligibility(self, customer_id: str) -> CardEligibility:
        customer = self._require_customer(customer_id)
        refusal = self._issuance_refusal(customer)
        eligible = refusal is None
        return CardEligibility(
            customer_id=customer.customer_id,
            name=customer.name,
            eligible=eligible,
            apt_for_card=customer.apt_for_card,
            score=customer.score,
            ranking=customer.ranking,
            ranking_description=customer.ranking_description,
            status=IssuanceStatus.ELIGIBLE_TO_REQUEST if eligible else IssuanceStatus.NOT_ELIGIBLE,
            eligible_card_count=eligibility.issuance_card_count(customer.score) if eligible else 0,
            reason="Customer may request card issuance" if eligible else refusal,
            last_analysis_at=customer.ranking_updated_at,
            state=derive_credit_state(customer),
        )

    # Internals

    def _issuance_refusal(self, customer: Customer) -> str | None:
        if not customer.active:
            return "Customer is inactive"
        if customer.analysis_blocked:
            return f"Last credit analysis failed: {customer.analysis_failure_reason}"
        if customer.ranking_updated_at is None:
            return "Customer has no completed credit analysis"
        if not eligibility.can_request_issuance(customer.apt_for_card, customer.score):
            return (
                f"Customer needs aptitude and a minimum score of "
                f"{eligibility.ISSUANCE_MIN_SCORE}; current score {customer.score}, "
                f"ranking {customer.ranking}"
            )
        return None

    def _registration_event(
        self,
        customer: Customer,
        estimated_income: Decimal,
        credit_history: CreditHistory,
        now: datetime,
    ) -> CustomerRegistered:
        today = now.date()
        birth_date = customer.birth_date or _years_before(today, DEFAULT_AGE)
        age = customer.age(today)
        return CustomerRegistered(
            correlation_id=str(uuid.uuid4()),
            customer_id=customer.customer_id,
            name=customer.name,
            document_id=customer.document_id,
            email=customer.email,
            estimated_income=estimated_income,
            age=age if age is not None else DEFAULT_AGE,
            credit_history_hint=credit_history.value,
            birth_date=birth_date,
        )

    def _publish(self, topic: str, event: IntegrationEvent, now: datetime) -> bool:
        envelope = event.to_envelope(self.config.source, now)
        return self.broker.publish(topic, envelope_to_dict(envelope), key=event.customer_id)

    def _require_customer(self, customer_id: str) -> Customer:
        customer = self.store.get_customer(customer_id)
        if customer is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        return customer

    def _find_customer(self, event: IntegrationEvent) -> Customer | None:
        customer = self.store.get_customer(event.customer_id)
        if customer is None:
            logger.warning(
                "Dropping %s for unknown customer %s",
                event.EVENT_TYPE,
                event.customer_id,
                extra={"extra": {"customer_id": event.customer_id, "correlation_id": event.correlation_id}},
            )
        return customer

    def _save_customer(self, original: Customer, updated: Customer) -> Customer:
        if updated == original:
            return original
        return self.store.update_customer(updated, original.version)

    def _save_financial(
        self,
        original: FinancialInformation,
        updated: FinancialInformation,
    ) -> FinancialInformation:
        if updated == original:
            return original
        return self.store.update_financial(updated, original.version)


def _years_before(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 on a non-leap target year
        return today.replace(year=today.year - years, day=28)
