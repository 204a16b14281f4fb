"""Domain models for card onboarding."""

from card_onboarding.models.base import Address, Event
from card_onboarding.models.card_types import CardTypeSet
from card_onboarding.models.customer import Customer
from card_onboarding.models.enums import CreditHistory, CreditState, IssuanceStatus
from card_onboarding.models.financial import FinancialInformation

__all__ = [
    "Address",
    "CardTypeSet",
    "CreditHistory",
    "CreditState",
    "Customer",
    "Event",
    "FinancialInformation",
    "IssuanceStatus",
]
