"""
RFQ Domain Models.

A client's request for quotation: which products, in what quantity.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class RFQStatus(Enum):
    """RFQ lifecycle states."""
    OPEN = "OPEN"
    QUOTED = "QUOTED"  # at least one quote sent to the client
    CLOSED = "CLOSED"  # a quote was accepted, or the RFQ expired
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class RFQItem:
    """One requested product line."""
    id: UUID
    line_number: int
    product_id: UUID | None
    quantity: int


@dataclass(frozen=True)
class RFQ:
    """A request for quotation."""
    id: UUID
    client_id: UUID
    status: RFQStatus
    items: tuple[RFQItem, ...]
    created_at: datetime
    delivery_location: str | None = None
    auto_quote_triggered: bool = False
    expires_at: datetime | None = None

    @property
    def item_count(self) -> int:
        return len(self.items)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now
