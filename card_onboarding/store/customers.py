"""In-memory customer store with optimistic concurrency."""

import copy
import threading
from dataclasses import dataclass, field
from datetime import datetime

from card_onboarding.exceptions import (
    ConcurrencyConflictError,
    CustomerNotFoundError,
    DuplicateEntityError,
    EntityNotFoundError,
)
from card_onboarding.expiry import list_pending_analysis
from card_onboarding.models import Customer, FinancialInformation
from card_onboarding.models.validators import digits_only


@dataclass
class CustomerStore:
    """Store for customers and their financial information.

    Reads hand out copies; writes go through :meth:`update_customer` /
    :meth:`update_financial`, which swap a whole aggregate in one
    compare-and-set on ``version``. A writer holding a stale copy gets
    :class:`ConcurrencyConflictError` instead of overwriting a newer
    state.
    """

    customers: dict[str, Customer] = field(default_factory=dict)
    financial: dict[str, FinancialInformation] = field(default_factory=dict)

    # Relationship and uniqueness indexes
    _customer_financial: dict[str, str] = field(default_factory=dict)
    _emails: dict[str, str] = field(default_factory=dict)
    _documents: dict[str, str] = field(default_factory=dict)

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_customer(self, customer: Customer) -> Customer:
        """Add a new customer to the store."""
        email = customer.email.lower()
        document = digits_only(customer.document_id)
        with self._lock:
            if customer.customer_id in self.customers:
                raise DuplicateEntityError(f"Customer {customer.customer_id} already exists")
            if email in self._emails:
                raise DuplicateEntityError(f"Email {customer.email} is already registered")
            if document in self._documents:
                raise DuplicateEntityError("Document is already registered")

            stored = copy.deepcopy(customer)
            stored.version = 1
            self.customers[stored.customer_id] = stored
            self._emails[email] = stored.customer_id
            self._documents[document] = stored.customer_id
            return copy.deepcopy(stored)

    def get_customer(self, customer_id: str) -> Customer | None:
        with self._lock:
            customer = self.customers.get(customer_id)
            return copy.deepcopy(customer) if customer is not None else None

    def customer_exists(self, customer_id: str) -> bool:
        with self._lock:
            return customer_id in self.customers

    def email_registered(self, email: str) -> bool:
        with self._lock:
            return email.lower() in self._emails

    def document_registered(self, document_id: str) -> bool:
        with self._lock:
            return digits_only(document_id) in self._documents

    def update_customer(self, customer: Customer, expected_version: int) -> Customer:
        """Replace a customer if the stored version still matches."""
        with self._lock:
            current = self.customers.get(customer.customer_id)
            if current is None:
                raise CustomerNotFoundError(f"Customer {customer.customer_id} not found")
            if current.version != expected_version:
                raise ConcurrencyConflictError(
                    f"Customer {customer.customer_id} is at version {current.version}, "
                    f"expected {expected_version}"
                )
            if current.email.lower() != customer.email.lower():
                new_email = customer.email.lower()
                if new_email in self._emails:
                    raise DuplicateEntityError(f"Email {customer.email} is already registered")
                del self._emails[current.email.lower()]
                self._emails[new_email] = customer.customer_id

            stored = copy.deepcopy(customer)
            stored.version = expected_version + 1
            self.customers[stored.customer_id] = stored
            return copy.deepcopy(stored)

    def add_financial(self, info: FinancialInformation) -> FinancialInformation:
        """Add financial information for an existing customer."""
        with self._lock:
            if info.customer_id not in self.customers:
                raise CustomerNotFoundError(f"Customer {info.customer_id} not found")
            if info.customer_id in self._customer_financial:
                raise DuplicateEntityError(
                    f"Financial information for customer {info.customer_id} already exists"
                )

            stored = copy.deepcopy(info)
            stored.version = 1
            self.financial[stored.financial_id] = stored
            self._customer_financial[stored.customer_id] = stored.financial_id
            return copy.deepcopy(stored)

    def get_financial(self, customer_id: str) -> FinancialInformation | None:
        """Financial information by customer id."""
        with self._lock:
            financial_id = self._customer_financial.get(customer_id)
            if financial_id is None:
                return None
            return copy.deepcopy(self.financial[financial_id])

    def financial_exists(self, customer_id: str) -> bool:
        with self._lock:
            return customer_id in self._customer_financial

    def update_financial(
        self,
        info: FinancialInformation,
        expected_version: int,
    ) -> FinancialInformation:
        """Replace financial information if the stored version still matches."""
        with self._lock:
            current = self.financial.get(info.financial_id)
            if current is None:
                raise EntityNotFoundError(f"Financial information {info.financial_id} not found")
            if current.version != expected_version:
                raise ConcurrencyConflictError(
                    f"Financial information {info.financial_id} is at version "
                    f"{current.version}, expected {expected_version}"
                )

            stored = copy.deepcopy(info)
            stored.version = expected_version + 1
            self.financial[stored.financial_id] = stored
            return copy.deepcopy(stored)

    # Query methods
    def list_by_ranking(self, ranking: int) -> list[FinancialInformation]:
        return self._select(lambda info: info.ranking == ranking)

    def list_with_score_above(self, min_score: int) -> list[FinancialInformation]:
        return self._select(lambda info: info.score >= min_score)

    def list_apt_for_card(self) -> list[FinancialInformation]:
        return self._select(lambda info: info.apt_for_card)

    def list_at_risk(self) -> list[FinancialInformation]:
        return self._select(lambda info: info.is_at_risk)

    def list_pending_analysis(self, now: datetime) -> list[FinancialInformation]:
        """Financial records due for a new credit analysis."""
        with self._lock:
            pending = list_pending_analysis(self.financial.values(), now)
            return [copy.deepcopy(info) for info in pending]

    def _select(self, predicate) -> list[FinancialInformation]:
        with self._lock:
            return [
                copy.deepcopy(info)
                for info in self.financial.values()
                if info.active and predicate(info)
            ]

    def summary(self) -> dict[str, int]:
        """Return summary counts of stored aggregates."""
        with self._lock:
            return {
                "customers": len(self.customers),
                "active_customers": sum(1 for c in self.customers.values() if c.active),
                "financial": len(self.financial),
            }
