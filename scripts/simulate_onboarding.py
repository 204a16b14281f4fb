#!/usr/bin/env python3
"""Simulate the full onboarding choreography in memory.

Generates customers with Faker, registers them, and answers the
outbound events with stand-in analysis and issuance services wired to
an ``InMemoryBroker``. No Kafka needed.

Usage:
    python scripts/simulate_onboarding.py --customers 100
    python scripts/simulate_onboarding.py --customers 1000 --seed 7 --failure-rate 0.1
"""

import argparse
import logging
import random
import sys
import time
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from card_onboarding.config import OnboardingConfig
from card_onboarding.coordinator import ChoreographyCoordinator
from card_onboarding.exceptions import IssuanceError
from card_onboarding.generators import ProfileGenerator, register_generated_customers
from card_onboarding.logging import setup_logging
from card_onboarding.messaging import InMemoryBroker
from card_onboarding.store import CustomerStore

logger = logging.getLogger(__name__)

# Score ranges per credit history hint
SCORE_RANGES = {
    "BOM": (600, 950),
    "REGULAR": (400, 750),
    "RUIM": (150, 550),
}
RANKING_BANDS = [(800, 5), (650, 4), (500, 3), (300, 2)]


def ranking_for(score: int) -> int:
    for floor, ranking in RANKING_BANDS:
        if score >= floor:
            return ranking
    return 1


class AnalysisResponder:
    """Stand-in credit analysis service."""

    def __init__(
        self,
        broker: InMemoryBroker,
        config: OnboardingConfig,
        rng: random.Random,
        failure_rate: float = 0.0,
    ) -> None:
        self.broker = broker
        self.topics = config.topics
        self.rng = rng
        self.failure_rate = failure_rate

    def __call__(self, message: dict) -> None:
        data = message["data"]
        now = datetime.now(timezone.utc).isoformat()
        if self.rng.random() < self.failure_rate:
            self.broker.publish(
                self.topics.analysis_failed,
                {
                    "correlation_id": message["correlation_id"],
                    "customer_id": data["customer_id"],
                    "reason": "Bureau timeout",
                    "attempted_at": now,
                    "can_retry": True,
                },
                key=data["customer_id"],
            )
            return

        low, high = SCORE_RANGES.get(data["credit_history_hint"], SCORE_RANGES["REGULAR"])
        score = self.rng.randint(low, high)
        ranking = ranking_for(score)
        eligible = ranking >= 3 and score >= 600
        self.broker.publish(
            self.topics.analysis_completed,
            {
                "correlation_id": message["correlation_id"],
                "customer_id": data["customer_id"],
                "score": score,
                "ranking": ranking,
                "eligible": eligible,
                "credit_limit": str(Decimal(score) * 10),
                "max_cards": 2 if eligible else 0,
                "reason": "Approved" if eligible else "Score below policy",
                "analyzed_at": now,
            },
            key=data["customer_id"],
        )


class IssuanceResponder:
    """Stand-in card issuance service."""

    def __init__(self, broker: InMemoryBroker, config: OnboardingConfig, rng: random.Random) -> None:
        self.broker = broker
        self.topics = config.topics
        self.rng = rng
        self.seen_keys: set[str] = set()

    def __call__(self, message: dict) -> None:
        data = message["data"]
        if data["idempotency_key"] in self.seen_keys:
            return
        self.seen_keys.add(data["idempotency_key"])
        self.broker.publish(
            self.topics.card_issued,
            {
                "correlation_id": message["correlation_id"],
                "customer_id": data["customer_id"],
                "card_id": f"card-{self.rng.getrandbits(32):08x}",
                "masked_number": f"**** **** **** {self.rng.randint(0, 9999):04d}",
                "status": "ISSUED",
                "product_code": data["product_code"],
                "issued_at": datetime.now(timezone.utc).isoformat(),
            },
            key=data["customer_id"],
        )


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="In-memory onboarding simulation")
    parser.add_argument("--customers", type=int, default=100, help="Customers to onboard (default: 100)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument(
        "--failure-rate",
        type=float,
        default=0.05,
        help="Share of credit analyses that fail (default: 0.05)",
    )
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    parser.add_argument("--log-format", default="standard", choices=["standard", "json"])
    args = parser.parse_args()

    setup_logging(args.log_level, args.log_format)
    # Per-customer coordinator logs drown the summary at INFO
    logging.getLogger("card_onboarding.coordinator").setLevel(logging.WARNING)

    config = OnboardingConfig()
    rng = random.Random(args.seed)
    broker = InMemoryBroker(config.topics)
    store = CustomerStore()
    coordinator = ChoreographyCoordinator(store, broker, config)
    coordinator.subscribe()
    broker.subscribe(
        config.topics.customer_registered,
        AnalysisResponder(broker, config, rng, args.failure_rate),
    )
    broker.subscribe(config.topics.card_issuance_requested, IssuanceResponder(broker, config, rng))

    generator = ProfileGenerator(seed=args.seed)
    start = time.perf_counter()

    logger.info("Registering %d customers...", args.customers)
    customer_ids = register_generated_customers(coordinator, generator, args.customers)
    broker.drain()

    logger.info("Requesting card issuance...")
    requested = refused = 0
    for customer_id in customer_ids:
        try:
            coordinator.request_card_issuance(customer_id)
        except IssuanceError as exc:
            refused += 1
            logger.debug("Customer %s: %s (%s)", customer_id, exc, exc.reason)
        else:
            requested += 1
    broker.drain()

    elapsed = time.perf_counter() - start
    states: dict[str, int] = {}
    for customer_id in customer_ids:
        state = coordinator.credit_state(customer_id).value
        states[state] = states.get(state, 0) + 1

    logger.info("=" * 60)
    logger.info("Simulation complete in %.2fs", elapsed)
    logger.info("=" * 60)
    logger.info("Customers: %d", len(customer_ids))
    logger.info("Issuance requested: %d, refused: %d", requested, refused)
    logger.info("Apt for card: %d", len(store.list_apt_for_card()))
    logger.info("At risk: %d", len(store.list_at_risk()))
    for state, count in sorted(states.items()):
        logger.info("  %-24s %d", state, count)
    logger.info("Dead letters: %d", sum(len(v) for v in broker.dead_letters.values()))


if __name__ == "__main__":
    main()
