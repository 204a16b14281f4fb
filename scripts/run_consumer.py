#!/usr/bin/env python3
"""Run the onboarding service against Kafka.

Registers a batch of generated customers (publishing CustomerRegistered
for the analysis service), then subscribes the coordinator to the
analysis and issuance result topics and consumes until interrupted.
Customers live in this process's store only, so results for anyone
registered elsewhere are dropped as unknown. Configuration comes from the
environment (see ``OnboardingConfig.from_env``); flags override it.

Usage:
    python scripts/run_consumer.py
    python scripts/run_consumer.py --bootstrap kafka:9092 --group-id onboarding-2
    python scripts/run_consumer.py --customers 500 --seed 7
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from card_onboarding.config import OnboardingConfig
from card_onboarding.coordinator import ChoreographyCoordinator
from card_onboarding.generators import ProfileGenerator, register_generated_customers
from card_onboarding.logging import setup_logging
from card_onboarding.messaging import KafkaBroker
from card_onboarding.models import CreditState
from card_onboarding.store import CustomerStore

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Card onboarding event consumer")
    parser.add_argument("--bootstrap", default=None, help="Kafka bootstrap servers")
    parser.add_argument("--group-id", default=None, help="Kafka consumer group id")
    parser.add_argument(
        "--customers",
        type=int,
        default=10,
        help="Generated customers to register before consuming (default: 10)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for generated customers")
    parser.add_argument(
        "--max-polls",
        type=int,
        default=None,
        help="Stop after this many polls (default: run until interrupted)",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
    args = parser.parse_args()
    if args.customers < 1:
        parser.error("--customers must be at least 1")

    config = OnboardingConfig.from_env()
    if args.bootstrap:
        config.kafka.bootstrap_servers = args.bootstrap
    if args.group_id:
        config.kafka.group_id = args.group_id
    setup_logging(args.log_level or config.log_level, config.log_format)

    broker = KafkaBroker(config.kafka, config.topics)
    coordinator = ChoreographyCoordinator(CustomerStore(), broker, config)
    coordinator.subscribe()

    def shutdown(signum, frame) -> None:
        logger.info("Received signal %d, stopping", signum)
        broker.stop()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    logger.info("=" * 60)
    logger.info("Card onboarding consumer")
    logger.info("=" * 60)
    logger.info("Bootstrap: %s", config.kafka.bootstrap_servers)
    logger.info("Group: %s", config.kafka.group_id)
    logger.info("Topics: %s", ", ".join(config.topics.inbound))
    logger.info("=" * 60)

    try:
        customer_ids = register_generated_customers(
            coordinator, ProfileGenerator(seed=args.seed), args.customers
        )
        pending = sum(
            1 for cid in customer_ids if coordinator.credit_state(cid) == CreditState.ANALYSIS_PENDING
        )
        logger.info("Registered %d customers, %d awaiting analysis", len(customer_ids), pending)
        stats = broker.run(max_polls=args.max_polls)
    finally:
        broker.close()

    logger.info(
        "Done: consumed=%d, dead_lettered=%d, redelivered=%d",
        stats.consumed,
        stats.dead_lettered,
        stats.redelivered,
    )


if __name__ == "__main__":
    main()
