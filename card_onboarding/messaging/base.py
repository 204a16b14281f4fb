"""Broker contract used by the coordinator."""

from abc import ABC, abstractmethod
from typing import Any, Callable

Handler = Callable[[dict], Any]


class MessageBroker(ABC):
    """Publish/subscribe over named topics.

    Delivery is at-least-once and unordered; handlers must be idempotent.
    A handler raising :class:`~card_onboarding.exceptions.ValidationError`
    sends the message to the topic's dead-letter destination; any other
    exception leaves it for redelivery.
    """

    @abstractmethod
    def publish(self, topic: str, payload: Any, key: str | None = None) -> bool:
        """Publish a payload. Returns False instead of raising on transport failure."""

    @abstractmethod
    def subscribe(self, topic: str, handler: Handler) -> None:
        """Invoke ``handler`` once per message delivered on ``topic``."""
