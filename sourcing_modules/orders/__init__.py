"""
Orders Module (``sourcing_modules.orders``).

Responsibility
--------------
Orders created by quote acceptance, their fulfilment lifecycle, and the
supplier payout view derived from completed orders.

Invariants enforced
-------------------
* One adjacency table (``ORDER_WORKFLOW``) governs every status change.
* DELIVERED, COMPLETED, CANCELLED and REFUNDED are terminal.
* Amount and line snapshot never change after creation.
"""

from sourcing_modules.orders.models import (
    Order,
    OrderLine,
    OrderStatus,
    PayoutSummary,
    PickupDetails,
    ShipmentDetails,
)
from sourcing_modules.orders.workflows import (
    ORDER_WORKFLOW,
    allowed_transitions,
    can_transition,
)

__all__ = [
    "ORDER_WORKFLOW",
    "Order",
    "OrderLine",
    "OrderStatus",
    "PayoutSummary",
    "PickupDetails",
    "ShipmentDetails",
    "allowed_transitions",
    "can_transition",
]
