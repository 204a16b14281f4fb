"""Kafka broker for integration events."""

import logging
import time
from dataclasses import dataclass
from typing import Any

from confluent_kafka import Consumer, KafkaError, KafkaException, Producer, TopicPartition

from card_onboarding.config import KafkaConfig, TopicConfig
from card_onboarding.events.serialization import decode, encode
from card_onboarding.exceptions import ValidationError
from card_onboarding.messaging.base import Handler, MessageBroker

logger = logging.getLogger(__name__)


@dataclass
class BrokerStats:
    """Track publish and consume statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0
    consumed: int = 0
    dead_lettered: int = 0
    redelivered: int = 0
    start_time: float | None = None

    @property
    def success_rate(self) -> float:
        """Calculate publish success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0


class KafkaBroker(MessageBroker):
    """Publish and consume integration events on Kafka.

    Publishing waits for the delivery report up to
    ``config.publish_timeout_seconds``. Consumption commits offsets by
    hand once a handler returns, so a crash mid-handler means redelivery.
    """

    def __init__(
        self,
        config: KafkaConfig | str,
        topics: TopicConfig | None = None,
    ) -> None:
        """Initialize Kafka broker.

        Parameters
        ----------
        config : KafkaConfig | str
            Kafka configuration or bootstrap servers string.
        topics : TopicConfig | None
            Topic names, used for dead-letter routing.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.topics = topics or TopicConfig()
        self.producer = self._create_producer()
        self.stats = BrokerStats()
        self._handlers: dict[str, Handler] = {}
        self._running = False

    def _create_producer(self) -> Producer:
        """Create Kafka producer with configuration."""
        return Producer(self.config.producer_dict())

    def _create_consumer(self) -> Consumer:
        return Consumer(self.config.consumer_dict())

    def publish(self, topic: str, payload: Any, key: str | None = None) -> bool:
        """Publish one message and wait, bounded, for its delivery report."""
        report: dict[str, Any] = {}

        def on_delivery(err: Any, msg: Any) -> None:
            report["error"] = err
            if err:
                self.stats.failed += 1
                logger.error("Delivery to %s failed: %s", topic, err)
            else:
                self.stats.delivered += 1
                logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

        try:
            self.producer.produce(
                topic=topic,
                key=key.encode("utf-8") if key else None,
                value=encode(payload),
                callback=on_delivery,
            )
        except (BufferError, KafkaException) as exc:
            self.stats.failed += 1
            logger.error("Could not enqueue message for %s: %s", topic, exc)
            return False

        self.stats.sent += 1
        remaining = self.producer.flush(self.config.publish_timeout_seconds)
        if remaining > 0:
            logger.warning(
                "Publish to %s timed out after %.1fs (%d message(s) still queued)",
                topic,
                self.config.publish_timeout_seconds,
                remaining,
            )
            return False
        if "error" not in report:
            logger.warning("No delivery report received for %s", topic)
            return False
        return report["error"] is None

    def subscribe(self, topic: str, handler: Handler) -> None:
        if topic in self._handlers:
            raise ValueError(f"Topic {topic} already has a handler")
        self._handlers[topic] = handler

    def run(self, max_polls: int | None = None) -> BrokerStats:
        """Consume subscribed topics until :meth:`stop` is called.

        Parameters
        ----------
        max_polls : int | None
            Stop after this many poll calls (None to run until stopped).

        Returns
        -------
        BrokerStats
            Publish and consume statistics.
        """
        if not self._handlers:
            raise ValueError("No topic subscriptions registered")

        consumer = self._create_consumer()
        consumer.subscribe(list(self._handlers))
        logger.info("Consuming from %s", ", ".join(self._handlers))

        self._running = True
        self.stats.start_time = time.time()
        polls = 0
        try:
            while self._running and (max_polls is None or polls < max_polls):
                polls += 1
                msg = consumer.poll(self.config.poll_timeout_seconds)
                if msg is None:
                    continue
                if msg.error():
                    if msg.error().code() != KafkaError._PARTITION_EOF:
                        logger.error("Consumer error: %s", msg.error())
                    continue
                self._process(consumer, msg)
        finally:
            self._running = False
            consumer.close()
            logger.info(
                "Consumer stopped: consumed=%d, dead_lettered=%d, redelivered=%d",
                self.stats.consumed,
                self.stats.dead_lettered,
                self.stats.redelivered,
            )
        return self.stats

    def stop(self) -> None:
        self._running = False

    def _process(self, consumer: Consumer, msg: Any) -> None:
        topic = msg.topic()
        handler = self._handlers[topic]
        key = msg.key().decode("utf-8") if msg.key() else None
        self.stats.consumed += 1

        try:
            message = decode(msg.value())
        except ValueError as exc:
            self._dead_letter(consumer, msg, key, [f"undecodable message: {exc}"])
            return

        try:
            handler(message)
        except ValidationError as exc:
            self._dead_letter(consumer, msg, key, exc.errors, message)
            return
        except Exception:
            logger.exception(
                "Handler for %s failed at offset %d, message will be redelivered",
                topic,
                msg.offset(),
            )
            self._rewind(consumer, msg)
            return

        consumer.commit(message=msg, asynchronous=False)

    def _dead_letter(
        self,
        consumer: Consumer,
        msg: Any,
        key: str | None,
        errors: list[str],
        message: dict | None = None,
    ) -> None:
        topic = msg.topic()
        dlq = self.topics.dead_letter(topic)
        payload = {
            "source_topic": topic,
            "partition": msg.partition(),
            "offset": msg.offset(),
            "errors": errors,
            "message": message if message is not None else _raw(msg.value()),
        }
        if not self.publish(dlq, payload, key):
            logger.error("Could not dead-letter offset %d of %s, will retry", msg.offset(), topic)
            self._rewind(consumer, msg)
            return
        self.stats.dead_lettered += 1
        logger.warning("Dead-lettered offset %d of %s to %s: %s", msg.offset(), topic, dlq, errors)
        consumer.commit(message=msg, asynchronous=False)

    def _rewind(self, consumer: Consumer, msg: Any) -> None:
        self.stats.redelivered += 1
        consumer.seek(TopicPartition(msg.topic(), msg.partition(), msg.offset()))

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages."""
        self.producer.flush(timeout)

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka broker closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )


def _raw(value: bytes | None) -> str:
    if value is None:
        return ""
    return value.decode("utf-8", errors="replace")
