"""In-memory broker for local runs and tests."""

import logging
from collections import defaultdict, deque
from typing import Any

from card_onboarding.config import TopicConfig
from card_onboarding.events.serialization import decode, encode
from card_onboarding.exceptions import ValidationError
from card_onboarding.messaging.base import Handler, MessageBroker

logger = logging.getLogger(__name__)


class InMemoryBroker(MessageBroker):
    """Queue-backed broker with synchronous, explicit delivery.

    Published messages are recorded per topic and queued; nothing is
    delivered until :meth:`drain` (or :meth:`deliver` for a single
    injected message), so a publisher is never re-entered by its own
    subscribers. Set ``available = False`` to simulate an outage.
    """

    def __init__(self, topics: TopicConfig | None = None) -> None:
        self.topics = topics or TopicConfig()
        self.available = True
        self.published: dict[str, list[dict]] = defaultdict(list)
        self.dead_letters: dict[str, list[dict]] = defaultdict(list)
        self._subs: dict[str, list[Handler]] = defaultdict(list)
        self._pending: deque[tuple[str, dict]] = deque()

    def publish(self, topic: str, payload: Any, key: str | None = None) -> bool:
        if not self.available:
            logger.warning("Broker unavailable, dropping publish to %s", topic)
            return False
        # Round-trip through the wire format so subscribers see what Kafka would carry
        message = decode(encode(payload))
        self.published[topic].append(message)
        self._pending.append((topic, message))
        logger.debug("Published to %s (key=%s)", topic, key)
        return True

    def subscribe(self, topic: str, handler: Handler) -> None:
        self._subs[topic].append(handler)

    def deliver(self, topic: str, message: dict) -> None:
        """Deliver one message to every subscriber of ``topic``.

        Validation failures are dead-lettered; other errors propagate so
        the caller can redeliver.
        """
        for handler in self._subs[topic]:
            try:
                handler(message)
            except ValidationError as exc:
                logger.error("Dead-lettering message on %s: %s", topic, exc)
                self.dead_letters[self.topics.dead_letter(topic)].append(
                    {"error": exc.errors, "message": message}
                )

    def drain(self) -> int:
        """Deliver queued messages until none are left. Returns the count."""
        delivered = 0
        while self._pending:
            topic, message = self._pending.popleft()
            self.deliver(topic, message)
            delivered += 1
        return delivered

    def clear(self) -> None:
        self.published.clear()
        self.dead_letters.clear()
        self._pending.clear()
