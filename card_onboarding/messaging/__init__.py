"""Message broker adapters."""

from card_onboarding.messaging.base import Handler, MessageBroker
from card_onboarding.messaging.kafka import KafkaBroker
from card_onboarding.messaging.memory import InMemoryBroker

__all__ = ["Handler", "InMemoryBroker", "KafkaBroker", "MessageBroker"]
