"""Configuration management for card-onboarding."""

import os
from dataclasses import dataclass, field
from typing import Any

from card_onboarding.exceptions import ConfigurationError


@dataclass
class KafkaConfig:
    """Kafka producer and consumer configuration."""

    bootstrap_servers: str = "localhost:9092"
    client_id: str = "card-onboarding"
    group_id: str = "card-onboarding"
    acks: str = "all"
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3
    auto_offset_reset: str = "earliest"
    publish_timeout_seconds: float = 5.0
    poll_timeout_seconds: float = 1.0

    def producer_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka producer config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
            "acks": self.acks,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
            "enable.idempotence": self.acks == "all",
            "message.timeout.ms": int(self.publish_timeout_seconds * 1000),
        }

    def consumer_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka consumer config dict.

        Offsets are committed manually after a handler returns, which is
        what gives at-least-once delivery.
        """
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
            "group.id": self.group_id,
            "auto.offset.reset": self.auto_offset_reset,
            "enable.auto.commit": False,
        }


@dataclass
class TopicConfig:
    """Topic names for every integration event."""

    customer_registered: str = "customer.registered"
    card_issuance_requested: str = "card.issuance.requested"
    analysis_completed: str = "credit.analysis.completed"
    analysis_failed: str = "credit.analysis.failed"
    card_issued: str = "card.issued"
    card_issuance_failed: str = "card.issuance.failed"
    dead_letter_suffix: str = ".dlq"

    def dead_letter(self, topic: str) -> str:
        """Dead-letter topic for an inbound topic."""
        return f"{topic}{self.dead_letter_suffix}"

    @property
    def inbound(self) -> list[str]:
        return [
            self.analysis_completed,
            self.analysis_failed,
            self.card_issued,
            self.card_issuance_failed,
        ]


@dataclass
class OnboardingConfig:
    """Main configuration for card-onboarding."""

    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    topics: TopicConfig = field(default_factory=TopicConfig)
    source: str = "card-onboarding"
    product_code: str = "CREDIT_CARD_PLATINUM"
    delivery_method: str = "CORREIOS_SEDEX"
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "OnboardingConfig":
        """Create config from environment variables."""
        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            client_id=os.getenv("KAFKA_CLIENT_ID", "card-onboarding"),
            group_id=os.getenv("KAFKA_GROUP_ID", "card-onboarding"),
            acks=os.getenv("KAFKA_ACKS", "all"),
            auto_offset_reset=os.getenv("KAFKA_AUTO_OFFSET_RESET", "earliest"),
            publish_timeout_seconds=_float_env("KAFKA_PUBLISH_TIMEOUT", 5.0),
            poll_timeout_seconds=_float_env("KAFKA_POLL_TIMEOUT", 1.0),
        )

        defaults = TopicConfig()
        topics = TopicConfig(
            customer_registered=os.getenv("TOPIC_CUSTOMER_REGISTERED", defaults.customer_registered),
            card_issuance_requested=os.getenv(
                "TOPIC_CARD_ISSUANCE_REQUESTED", defaults.card_issuance_requested
            ),
            analysis_completed=os.getenv("TOPIC_ANALYSIS_COMPLETED", defaults.analysis_completed),
            analysis_failed=os.getenv("TOPIC_ANALYSIS_FAILED", defaults.analysis_failed),
            card_issued=os.getenv("TOPIC_CARD_ISSUED", defaults.card_issued),
            card_issuance_failed=os.getenv("TOPIC_CARD_ISSUANCE_FAILED", defaults.card_issuance_failed),
        )

        log_format = os.getenv("LOG_FORMAT", "standard")
        if log_format not in ("standard", "json"):
            raise ConfigurationError(f"LOG_FORMAT must be 'standard' or 'json', got {log_format!r}")

        return cls(
            kafka=kafka,
            topics=topics,
            source=os.getenv("EVENT_SOURCE", "card-onboarding"),
            product_code=os.getenv("CARD_PRODUCT_CODE", "CREDIT_CARD_PLATINUM"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=log_format,
        )


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value
