"""Tests for config and logging."""

import io
import json
import logging
import os
import sys
from unittest.mock import patch

import pytest

from card_onboarding.config import KafkaConfig, OnboardingConfig, TopicConfig
from card_onboarding.exceptions import ConfigurationError
from card_onboarding.logging import CorrelationFilter, JsonFormatter, get_logger, setup_logging

ENV_VARS = [
    "KAFKA_BOOTSTRAP_SERVERS",
    "KAFKA_CLIENT_ID",
    "KAFKA_GROUP_ID",
    "KAFKA_ACKS",
    "KAFKA_AUTO_OFFSET_RESET",
    "KAFKA_PUBLISH_TIMEOUT",
    "KAFKA_POLL_TIMEOUT",
    "TOPIC_CUSTOMER_REGISTERED",
    "TOPIC_CARD_ISSUANCE_REQUESTED",
    "TOPIC_ANALYSIS_COMPLETED",
    "TOPIC_ANALYSIS_FAILED",
    "TOPIC_CARD_ISSUED",
    "TOPIC_CARD_ISSUANCE_FAILED",
    "EVENT_SOURCE",
    "CARD_PRODUCT_CODE",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture
def clean_env():
    """Environment without any card-onboarding variables."""
    env = {k: v for k, v in os.environ.items() if k not in ENV_VARS}
    with patch.dict(os.environ, env, clear=True):
        yield


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestKafkaConfig:
    """Tests for KafkaConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = KafkaConfig()

        assert config.bootstrap_servers == "localhost:9092"
        assert config.group_id == "card-onboarding"
        assert config.acks == "all"
        assert config.publish_timeout_seconds == 5.0
        assert config.poll_timeout_seconds == 1.0

    def test_producer_dict(self) -> None:
        """Test conversion to confluent-kafka producer config."""
        config = KafkaConfig(bootstrap_servers="kafka:9092", publish_timeout_seconds=2.5)

        result = config.producer_dict()

        assert result["bootstrap.servers"] == "kafka:9092"
        assert result["acks"] == "all"
        assert result["enable.idempotence"] is True
        assert result["message.timeout.ms"] == 2500
        assert result["compression.type"] == "snappy"

    def test_producer_dict_without_full_acks(self) -> None:
        result = KafkaConfig(acks="1").producer_dict()
        assert result["enable.idempotence"] is False

    def test_consumer_dict_commits_manually(self) -> None:
        """Offsets are committed by the broker, never automatically."""
        result = KafkaConfig(group_id="g1").consumer_dict()

        assert result["group.id"] == "g1"
        assert result["enable.auto.commit"] is False
        assert result["auto.offset.reset"] == "earliest"


class TestTopicConfig:
    """Tests for TopicConfig."""

    def test_default_topics(self) -> None:
        topics = TopicConfig()

        assert topics.customer_registered == "customer.registered"
        assert topics.card_issuance_requested == "card.issuance.requested"
        assert topics.analysis_completed == "credit.analysis.completed"
        assert topics.analysis_failed == "credit.analysis.failed"
        assert topics.card_issued == "card.issued"
        assert topics.card_issuance_failed == "card.issuance.failed"

    def test_dead_letter(self) -> None:
        assert TopicConfig().dead_letter("card.issued") == "card.issued.dlq"

    def test_inbound(self) -> None:
        topics = TopicConfig()

        assert topics.inbound == [
            "credit.analysis.completed",
            "credit.analysis.failed",
            "card.issued",
            "card.issuance.failed",
        ]
        assert topics.customer_registered not in topics.inbound


class TestOnboardingConfig:
    """Tests for OnboardingConfig."""

    def test_default_values(self) -> None:
        config = OnboardingConfig()

        assert isinstance(config.kafka, KafkaConfig)
        assert isinstance(config.topics, TopicConfig)
        assert config.source == "card-onboarding"
        assert config.product_code == "CREDIT_CARD_PLATINUM"
        assert config.delivery_method == "CORREIOS_SEDEX"
        assert config.log_level == "INFO"
        assert config.log_format == "standard"

    def test_from_env_default(self, clean_env: None) -> None:
        """Test creating config from environment with defaults."""
        config = OnboardingConfig.from_env()

        assert config == OnboardingConfig()

    def test_from_env_custom(self, clean_env: None) -> None:
        """Test creating config from custom environment variables."""
        env_vars = {
            "KAFKA_BOOTSTRAP_SERVERS": "kafka-cluster:9092",
            "KAFKA_GROUP_ID": "onboarding-blue",
            "KAFKA_PUBLISH_TIMEOUT": "2.5",
            "TOPIC_CARD_ISSUED": "prod.card.issued",
            "EVENT_SOURCE": "onboarding-api",
            "CARD_PRODUCT_CODE": "CREDIT_CARD_GOLD",
            "LOG_LEVEL": "DEBUG",
            "LOG_FORMAT": "json",
        }

        with patch.dict(os.environ, env_vars):
            config = OnboardingConfig.from_env()

        assert config.kafka.bootstrap_servers == "kafka-cluster:9092"
        assert config.kafka.group_id == "onboarding-blue"
        assert config.kafka.publish_timeout_seconds == 2.5
        assert config.topics.card_issued == "prod.card.issued"
        assert config.topics.analysis_completed == "credit.analysis.completed"
        assert config.source == "onboarding-api"
        assert config.product_code == "CREDIT_CARD_GOLD"
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_from_env_invalid_log_format(self, clean_env: None) -> None:
        with patch.dict(os.environ, {"LOG_FORMAT": "xml"}):
            with pytest.raises(ConfigurationError, match="LOG_FORMAT"):
                OnboardingConfig.from_env()

    def test_from_env_non_numeric_timeout(self, clean_env: None) -> None:
        with patch.dict(os.environ, {"KAFKA_PUBLISH_TIMEOUT": "soon"}):
            with pytest.raises(ConfigurationError, match="KAFKA_PUBLISH_TIMEOUT"):
                OnboardingConfig.from_env()

    def test_from_env_non_positive_timeout(self, clean_env: None) -> None:
        with patch.dict(os.environ, {"KAFKA_POLL_TIMEOUT": "0"}):
            with pytest.raises(ConfigurationError, match="positive"):
                OnboardingConfig.from_env()


@pytest.mark.usefixtures("restore_root_logger")
class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_default(self) -> None:
        """Test default logging setup."""
        setup_logging()

        assert logging.getLogger("card_onboarding").level == logging.INFO
        assert logging.getLogger("confluent_kafka").level == logging.WARNING

    def test_setup_logging_debug(self) -> None:
        setup_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_invalid_level(self) -> None:
        """Test logging with invalid level defaults to INFO."""
        setup_logging(level="INVALID")

        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_replaces_handlers(self) -> None:
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_setup_logging_json_format(self) -> None:
        setup_logging(format_type="json")

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, JsonFormatter)

    def test_standard_format_shows_correlation_id(self) -> None:
        stream = io.StringIO()
        setup_logging(stream=stream)
        logger = logging.getLogger("card_onboarding.test")

        logger.info("with context", extra={"extra": {"correlation_id": "corr-42"}})
        logger.info("without context")

        first, second = stream.getvalue().splitlines()
        assert "| corr-42 | with context" in first
        assert "| - | without context" in second

    def test_json_format_to_stream(self) -> None:
        stream = io.StringIO()
        setup_logging(format_type="json", stream=stream)

        logging.getLogger("card_onboarding.test").warning(
            "dropped", extra={"extra": {"customer_id": "cust-001"}}
        )

        data = json.loads(stream.getvalue())
        assert data["message"] == "dropped"
        assert data["customer_id"] == "cust-001"


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _record(self, **kwargs) -> logging.LogRecord:
        record = logging.LogRecord(
            name="card_onboarding.coordinator",
            level=logging.INFO,
            pathname="coordinator.py",
            lineno=1,
            msg="Customer %s registered",
            args=("cust-001",),
            exc_info=kwargs.pop("exc_info", None),
        )
        for key, value in kwargs.items():
            setattr(record, key, value)
        return record

    def test_format_basic(self) -> None:
        data = json.loads(JsonFormatter().format(self._record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "card_onboarding.coordinator"
        assert data["message"] == "Customer cust-001 registered"
        assert "timestamp" in data

    def test_format_merges_extra(self) -> None:
        record = self._record(extra={"customer_id": "cust-001", "correlation_id": "corr-1"})

        data = json.loads(JsonFormatter().format(record))

        assert data["customer_id"] == "cust-001"
        assert data["correlation_id"] == "corr-1"

    def test_format_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = self._record(exc_info=sys.exc_info())

        data = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: boom" in data["exception"]


class TestGetLogger:
    def test_get_logger(self) -> None:
        logger = get_logger("card_onboarding.test")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "card_onboarding.test"


class TestCorrelationFilter:
    """Tests for CorrelationFilter."""

    def _record(self) -> logging.LogRecord:
        return logging.LogRecord("card_onboarding", logging.INFO, "x.py", 1, "msg", (), None)

    def test_from_context(self) -> None:
        record = self._record()
        record.extra = {"correlation_id": "corr-1"}

        assert CorrelationFilter().filter(record) is True
        assert record.correlation_id == "corr-1"

    def test_default(self) -> None:
        record = self._record()

        CorrelationFilter().filter(record)

        assert record.correlation_id == "-"
