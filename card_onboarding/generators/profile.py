"""Synthetic customer profiles for local runs and load tests."""

from __future__ import annotations

import random
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Iterator

from faker import Faker

from card_onboarding.models import Address, CreditHistory, Customer

if TYPE_CHECKING:
    from card_onboarding.coordinator import ChoreographyCoordinator

AREA_CODES = ["11", "21", "31", "41", "47", "51", "61", "71", "81", "85"]
CREDIT_HISTORY_WEIGHTS = {
    CreditHistory.GOOD: 0.35,
    CreditHistory.REGULAR: 0.50,
    CreditHistory.POOR: 0.15,
}


class ProfileGenerator:
    """Generate valid Brazilian customer profiles.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale (default ``pt_BR``).
    """

    def __init__(self, seed: int | None = None, locale: str = "pt_BR") -> None:
        self.fake = Faker(locale)
        self.rng = random.Random(seed)
        if seed is not None:
            self.fake.seed_instance(seed)
        self._sequence = 0

    def customer(self, now: datetime | None = None) -> Customer:
        """Generate a single customer with a fresh id, aged relative to ``now``."""
        now = now or datetime.now(timezone.utc)
        self._sequence += 1
        return Customer.create(
            name=self.fake.name(),
            email=f"{self.fake.user_name()}.{self._sequence}@{self.fake.free_email_domain()}",
            phone=self.phone(),
            document_id=self.fake.cpf(),
            address=self.address(),
            birth_date=self.birth_date(today=now.date()),
            now=now,
        )

    def customers(self, count: int, now: datetime | None = None) -> Iterator[Customer]:
        """Generate multiple customers.

        Parameters
        ----------
        count : int
            Number of customers to generate.
        now : datetime | None
            Creation time and age reference (default: current time).

        Yields
        ------
        Customer
            Generated customers.
        """
        for _ in range(count):
            yield self.customer(now)

    def address(self) -> Address:
        return Address(
            street=self.fake.street_name(),
            number=self.fake.building_number(),
            neighborhood=self.fake.bairro(),
            city=self.fake.city(),
            state=self.fake.estado_sigla(),
            postal_code=self.fake.postcode(),
        )

    def phone(self) -> str:
        # Mobile: area code + 9 + eight digits
        return f"{self.rng.choice(AREA_CODES)}9{self.rng.randint(0, 99_999_999):08d}"

    def birth_date(self, min_age: int = 18, max_age: int = 80, today: date | None = None) -> date:
        days = self.rng.randint(min_age * 365, max_age * 365)
        return (today or date.today()) - timedelta(days=days)

    def monthly_income(self) -> Decimal:
        # Log-normal, ~13k median, capped
        income = min(self.rng.lognormvariate(9.5, 0.7), 50_000)
        return Decimal(str(round(income, 2)))

    def credit_history(self) -> CreditHistory:
        histories = list(CREDIT_HISTORY_WEIGHTS)
        weights = list(CREDIT_HISTORY_WEIGHTS.values())
        return self.rng.choices(histories, weights=weights, k=1)[0]


def register_generated_customers(
    coordinator: ChoreographyCoordinator,
    generator: ProfileGenerator,
    count: int,
    now: datetime | None = None,
) -> list[str]:
    """Register ``count`` generated customers through the coordinator.

    Each registration publishes ``CustomerRegistered``, so the analysis
    service answers for customers this process knows about.

    Returns
    -------
    list[str]
        Ids of the registered customers.
    """
    customer_ids = []
    for customer in generator.customers(count, now):
        stored = coordinator.register_customer(
            customer,
            estimated_income=generator.monthly_income(),
            credit_history=generator.credit_history(),
        )
        customer_ids.append(stored.customer_id)
    return customer_ids
