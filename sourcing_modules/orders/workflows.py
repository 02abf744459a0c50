"""
Order Workflow.

One adjacency table governs every order status change, whether it comes
from a fulfilment action or an admin override.  ``can_transition`` and
``allowed_transitions`` are derived from it.

DELIVERED, COMPLETED, CANCELLED and REFUNDED are terminal.  No state
transitions to itself.
"""

from sourcing_kernel.domain.workflow import Transition, Workflow
from sourcing_kernel.logging_config import get_logger

logger = get_logger("modules.orders.workflows")

_FULFILMENT_TARGETS = (
    ("READY_FOR_PICKUP", "mark_ready_for_pickup"),
    ("PICKUP_SCHEDULED", "schedule_pickup"),
    ("OUT_FOR_DELIVERY", "dispatch"),
    ("SHIPPED", "ship"),
    ("IN_TRANSIT", "mark_in_transit"),
    ("DELIVERED", "deliver"),
)


def _fan_out(source: str, targets) -> tuple[Transition, ...]:
    return tuple(Transition(source, target, action=action) for target, action in targets)


ORDER_WORKFLOW = Workflow(
    name="order",
    description="Order fulfilment lifecycle",
    initial_state="PENDING_ADMIN_CONFIRMATION",
    states=(
        "PENDING_ADMIN_CONFIRMATION",
        "PENDING_PAYMENT",
        "AWAITING_CONFIRMATION",
        "PAYMENT_CONFIRMED",
        "PROCESSING",
        "READY_FOR_PICKUP",
        "PICKUP_SCHEDULED",
        "OUT_FOR_DELIVERY",
        "SHIPPED",
        "IN_TRANSIT",
        "DELIVERED",
        "COMPLETED",
        "CANCELLED",
        "REFUNDED",
    ),
    transitions=(
        # Admin confirmation and payment
        Transition("PENDING_ADMIN_CONFIRMATION", "PENDING_PAYMENT", action="confirm"),
        Transition("PENDING_ADMIN_CONFIRMATION", "CANCELLED", action="cancel"),
        Transition("PENDING_PAYMENT", "PENDING_ADMIN_CONFIRMATION", action="return_to_admin"),
        Transition("PENDING_PAYMENT", "AWAITING_CONFIRMATION", action="submit_payment"),
        Transition("PENDING_PAYMENT", "PAYMENT_CONFIRMED", action="confirm_payment"),
        Transition("PENDING_PAYMENT", "CANCELLED", action="cancel"),
        Transition("AWAITING_CONFIRMATION", "PENDING_PAYMENT", action="reject_payment"),
        Transition("AWAITING_CONFIRMATION", "PAYMENT_CONFIRMED", action="confirm_payment"),
        Transition("AWAITING_CONFIRMATION", "CANCELLED", action="cancel"),
        # Paid orders
        Transition("PAYMENT_CONFIRMED", "PROCESSING", action="start_processing"),
        *_fan_out("PAYMENT_CONFIRMED", _FULFILMENT_TARGETS),
        Transition("PAYMENT_CONFIRMED", "CANCELLED", action="cancel"),
        Transition("PAYMENT_CONFIRMED", "REFUNDED", action="refund"),
        *_fan_out("PROCESSING", _FULFILMENT_TARGETS),
        Transition("PROCESSING", "CANCELLED", action="cancel"),
        Transition("PROCESSING", "REFUNDED", action="refund"),
        # Pickup path
        Transition("READY_FOR_PICKUP", "PICKUP_SCHEDULED", action="schedule_pickup"),
        Transition("READY_FOR_PICKUP", "OUT_FOR_DELIVERY", action="dispatch"),
        Transition("READY_FOR_PICKUP", "IN_TRANSIT", action="mark_in_transit"),
        Transition("READY_FOR_PICKUP", "DELIVERED", action="deliver"),
        Transition("READY_FOR_PICKUP", "COMPLETED", action="complete_pickup"),
        Transition("READY_FOR_PICKUP", "CANCELLED", action="cancel"),
        Transition("PICKUP_SCHEDULED", "OUT_FOR_DELIVERY", action="dispatch"),
        Transition("PICKUP_SCHEDULED", "IN_TRANSIT", action="mark_in_transit"),
        Transition("PICKUP_SCHEDULED", "DELIVERED", action="deliver"),
        Transition("PICKUP_SCHEDULED", "COMPLETED", action="complete_pickup"),
        Transition("PICKUP_SCHEDULED", "CANCELLED", action="cancel"),
        # Delivery path
        Transition("OUT_FOR_DELIVERY", "IN_TRANSIT", action="mark_in_transit"),
        Transition("OUT_FOR_DELIVERY", "DELIVERED", action="deliver"),
        Transition("OUT_FOR_DELIVERY", "CANCELLED", action="cancel"),
        Transition("SHIPPED", "IN_TRANSIT", action="mark_in_transit"),
        Transition("SHIPPED", "DELIVERED", action="deliver"),
        Transition("SHIPPED", "CANCELLED", action="cancel"),
        Transition("IN_TRANSIT", "DELIVERED", action="deliver"),
        Transition("IN_TRANSIT", "CANCELLED", action="cancel"),
    ),
    terminal_states=("DELIVERED", "COMPLETED", "CANCELLED", "REFUNDED"),
)

COMPLETED_STATUSES = frozenset({"DELIVERED", "COMPLETED"})

# Targets each non-admin role may request; admins may request any target
SUPPLIER_TARGETS = frozenset({
    "PROCESSING",
    "READY_FOR_PICKUP",
    "PICKUP_SCHEDULED",
    "OUT_FOR_DELIVERY",
    "SHIPPED",
    "IN_TRANSIT",
    "DELIVERED",
})
CLIENT_TARGETS = frozenset({
    "AWAITING_CONFIRMATION",
    "COMPLETED",
    "CANCELLED",
})


def can_transition(current: str, target: str) -> bool:
    return ORDER_WORKFLOW.can_transition(current, target)


def allowed_transitions(current: str) -> tuple[str, ...]:
    return ORDER_WORKFLOW.allowed_transitions(current)


def is_active(status: str) -> bool:
    return not ORDER_WORKFLOW.is_terminal(status)


logger.info(
    "order_workflow_registered",
    extra={
        "workflow_name": ORDER_WORKFLOW.name,
        "state_count": len(ORDER_WORKFLOW.states),
        "transition_count": len(ORDER_WORKFLOW.transitions),
        "initial_state": ORDER_WORKFLOW.initial_state,
    },
)
