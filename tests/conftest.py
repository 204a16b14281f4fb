"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from card_onboarding.config import OnboardingConfig
from card_onboarding.coordinator import ChoreographyCoordinator
from card_onboarding.messaging import InMemoryBroker
from card_onboarding.models import Address, Customer
from card_onboarding.store import CustomerStore

VALID_CPF = "529.982.247-25"
OTHER_VALID_CPF = "111.444.777-35"


class FakeClock:
    """Settable clock for the coordinator."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now: datetime) -> FakeClock:
    return FakeClock(now)


@pytest.fixture
def address() -> Address:
    """Valid delivery address."""
    return Address(
        street="Avenida Paulista",
        number="1000",
        neighborhood="Bela Vista",
        city="Sao Paulo",
        state="SP",
        postal_code="01310-100",
    )


@pytest.fixture
def customer(address: Address, now: datetime) -> Customer:
    """Valid, not yet stored customer."""
    return Customer.create(
        name="Maria Silva",
        email="maria.silva@example.com",
        phone="11987654321",
        document_id=VALID_CPF,
        address=address,
        now=now,
    )


@pytest.fixture
def other_customer(address: Address, now: datetime) -> Customer:
    return Customer.create(
        name="Joao Souza",
        email="joao.souza@example.com",
        phone="21987654321",
        document_id=OTHER_VALID_CPF,
        address=address,
        now=now,
    )


@pytest.fixture
def config() -> OnboardingConfig:
    return OnboardingConfig()


@pytest.fixture
def store() -> CustomerStore:
    return CustomerStore()


@pytest.fixture
def broker(config: OnboardingConfig) -> InMemoryBroker:
    return InMemoryBroker(config.topics)


@pytest.fixture
def coordinator(
    store: CustomerStore,
    broker: InMemoryBroker,
    config: OnboardingConfig,
    clock: FakeClock,
) -> ChoreographyCoordinator:
    """Coordinator subscribed to the in-memory broker."""
    coordinator = ChoreographyCoordinator(store, broker, config, clock=clock)
    coordinator.subscribe()
    return coordinator


@pytest.fixture
def analysis_message() -> Callable[..., dict]:
    """Factory for credit.analysis.completed messages."""

    def build(
        customer_id: str,
        score: int,
        ranking: int,
        analyzed_at: datetime,
        eligible: bool | None = None,
        **overrides: Any,
    ) -> dict:
        message = {
            "correlation_id": "corr-analysis-001",
            "customer_id": customer_id,
            "score": score,
            "ranking": ranking,
            "eligible": (ranking >= 3 and score >= 600) if eligible is None else eligible,
            "credit_limit": str(score * 10),
            "max_cards": 2,
            "reason": "Analysis completed",
            "analyzed_at": analyzed_at.isoformat(),
        }
        message.update(overrides)
        return message

    return build
