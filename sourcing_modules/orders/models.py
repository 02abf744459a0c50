"""
Order Domain Models.

The nouns of fulfilment: orders, their frozen line snapshot, shipment and
pickup details, and supplier payout summaries.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class OrderStatus(Enum):
    """Order lifecycle states."""
    PENDING_ADMIN_CONFIRMATION = "PENDING_ADMIN_CONFIRMATION"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"  # client reported payment
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    PROCESSING = "PROCESSING"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    PICKUP_SCHEDULED = "PICKUP_SCHEDULED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    SHIPPED = "SHIPPED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


@dataclass(frozen=True)
class ShipmentDetails:
    carrier: str
    tracking_number: str
    estimated_delivery: datetime | None = None


@dataclass(frozen=True)
class PickupDetails:
    pickup_date: datetime
    location: str
    contact: str | None = None


@dataclass(frozen=True)
class OrderLine:
    """A line of the accepted quote, frozen at order creation."""
    line_number: int
    product_id: UUID | None
    quantity: Decimal
    unit_price: Decimal
    lead_time: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Order:
    """An order created by accepting a quote."""
    id: UUID
    quote_id: UUID
    rfq_id: UUID
    client_id: UUID
    supplier_id: UUID
    amount: Decimal
    supplier_amount: Decimal
    status: OrderStatus
    created_at: datetime
    lines: tuple[OrderLine, ...] = field(default_factory=tuple)
    shipment: ShipmentDetails | None = None
    pickup: PickupDetails | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class PayoutSummary:
    """A supplier's completed-order earnings split by the holding period."""
    supplier_id: UUID
    pending_total: Decimal
    released_total: Decimal
    pending_count: int
    released_count: int
    next_release_at: datetime | None = None

    @property
    def total_earnings(self) -> Decimal:
        return self.pending_total + self.released_total
