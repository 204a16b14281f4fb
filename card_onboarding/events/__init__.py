"""Integration events exchanged with the analysis and issuance services."""

from card_onboarding.events.catalog import (
    INBOUND_EVENTS,
    CardIssuanceFailed,
    CardIssuanceRequested,
    CardIssued,
    CreditAnalysisCompleted,
    CreditAnalysisFailed,
    CustomerRegistered,
    DeliveryAddress,
    IntegrationEvent,
    idempotency_key,
)

__all__ = [
    "INBOUND_EVENTS",
    "CardIssuanceFailed",
    "CardIssuanceRequested",
    "CardIssued",
    "CreditAnalysisCompleted",
    "CreditAnalysisFailed",
    "CustomerRegistered",
    "DeliveryAddress",
    "IntegrationEvent",
    "idempotency_key",
]
