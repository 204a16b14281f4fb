"""Base models shared across aggregates."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Address:
    """Postal address used for card delivery.

    - street/number: street address
    - neighborhood: bairro
    - state: two-letter UF abbreviation
    - postal_code: CEP, 8 digits with or without the dash
    - country: ISO 3166-1 alpha-2 code (default: ``"BR"``)
    """

    street: str
    city: str
    state: str
    postal_code: str
    number: str = ""
    neighborhood: str = ""
    complement: str = ""
    country: str = "BR"


@dataclass(frozen=True)
class Event:
    """Standard envelope for integration events on the wire."""

    event_id: str
    event_type: str  # PascalCase catalog name (e.g., CardIssuanceRequested)
    event_time: datetime
    source: str  # Service/system that generated
    subject: str  # Customer ID affected
    correlation_id: str
    data: dict
    metadata: dict = field(default_factory=dict)
