"""
Order Service (``sourcing_modules.orders.service``).

Responsibility
--------------
Every order status change goes through ``OrderService.transition_order``:
fulfilment actions by the supplier, payment steps by the client, and
admin overrides alike.  The transition is checked against
``ORDER_WORKFLOW`` and then applied with a status compare-and-swap.

Invariants enforced
-------------------
* A transition outside the adjacency table fails with
  ``InvalidStatusTransitionError`` and leaves the order unchanged.
* Self-transitions are illegal, so a retried request fails instead of
  applying twice.
* ``completed_at`` is stamped exactly once, on entering DELIVERED or
  COMPLETED.
* Amount, parties and line snapshot are frozen at creation.

Failure modes
-------------
* ``EntityNotFoundError`` -- unknown order.
* ``PermissionDeniedError`` -- the actor may not request that target.
* ``ConcurrentModificationError`` -- another writer moved the order first.
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from sourcing_config import MarketplaceConfig, get_active_config
from sourcing_kernel.db.guards import compare_and_swap, lock_for_update
from sourcing_kernel.domain.actor import Actor, ActorRole
from sourcing_kernel.domain.clock import Clock
from sourcing_kernel.domain.results import OperationResult
from sourcing_kernel.exceptions import (
    EntityNotFoundError,
    InvalidStatusTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from sourcing_kernel.logging_config import LogContext, get_logger
from sourcing_kernel.services.base import BaseService
from sourcing_kernel.services.notification import NotificationSink
from sourcing_modules.orders.models import (
    Order,
    OrderLine,
    PayoutSummary,
    PickupDetails,
    ShipmentDetails,
)
from sourcing_modules.orders.orm import OrderLineModel, OrderModel
from sourcing_modules.orders.selector import OrderSelector
from sourcing_modules.orders.workflows import (
    CLIENT_TARGETS,
    COMPLETED_STATUSES,
    ORDER_WORKFLOW,
    SUPPLIER_TARGETS,
)

logger = get_logger("modules.orders.service")


def create_order(
    session: Session,
    *,
    quote_id: UUID,
    rfq_id: UUID,
    client_id: UUID,
    supplier_id: UUID,
    amount: Decimal,
    supplier_amount: Decimal,
    lines: Sequence[OrderLine],
    initial_status: str,
    created_at: datetime,
    actor_id: UUID | None = None,
) -> OrderModel:
    """
    Persist a new order and its line snapshot in the caller's transaction.

    Used by quote acceptance; the order exists only if the acceptance
    commits.
    """
    if initial_status not in ORDER_WORKFLOW.states:
        raise ValidationError(
            f"Unknown initial order status {initial_status!r}", field="initial_status",
        )
    order = OrderModel(
        id=uuid4(),
        quote_id=quote_id,
        rfq_id=rfq_id,
        client_id=client_id,
        supplier_id=supplier_id,
        amount=amount,
        supplier_amount=supplier_amount,
        status=initial_status,
        created_at=created_at,
        created_by_id=actor_id,
    )
    session.add(order)
    for line in lines:
        session.add(OrderLineModel(
            id=uuid4(),
            order_id=order.id,
            line_number=line.line_number,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            lead_time=line.lead_time,
            created_by_id=actor_id,
        ))
    session.flush()
    logger.info(
        "order_created",
        extra={
            "order_id": str(order.id),
            "quote_id": str(quote_id),
            "amount": str(amount),
            "status": initial_status,
            "line_count": len(lines),
        },
    )
    return order


def _may_request(actor: Actor, order: OrderModel, target: str) -> bool:
    if actor.role == ActorRole.ADMIN:
        return True
    if actor.role == ActorRole.SUPPLIER:
        return actor.actor_id == order.supplier_id and target in SUPPLIER_TARGETS
    if actor.role == ActorRole.CLIENT:
        return actor.actor_id == order.client_id and target in CLIENT_TARGETS
    return False


class OrderService(BaseService):
    """Order lifecycle and supplier payouts."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: MarketplaceConfig | None = None,
        notifier: NotificationSink | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock=clock, notifier=notifier, auto_commit=auto_commit)
        self._config = config or get_active_config()
        self._selector = OrderSelector(session)

    def transition_order(
        self,
        order_id: UUID,
        target: str,
        actor: Actor,
        *,
        shipment: ShipmentDetails | None = None,
        pickup: PickupDetails | None = None,
    ) -> OperationResult[Order]:
        """
        Move an order to ``target``.

        Shipment and pickup details, when given, are stored with the
        status change.
        """

        def body() -> Order:
            if target not in ORDER_WORKFLOW.states:
                raise ValidationError(f"Unknown order status {target!r}", field="status")

            order = lock_for_update(self._session, OrderModel, order_id)
            if order is None:
                raise EntityNotFoundError("Order", order_id)
            current = order.status

            if not _may_request(actor, order, target):
                raise PermissionDeniedError(actor.actor_id, f"move order to {target}", order_id)

            if not ORDER_WORKFLOW.can_transition(current, target):
                logger.warning(
                    "order_transition_rejected",
                    extra={
                        "order_id": str(order_id),
                        "from_status": current,
                        "to_status": target,
                        "allowed": list(ORDER_WORKFLOW.allowed_transitions(current)),
                    },
                )
                raise InvalidStatusTransitionError("Order", order_id, current, target)

            values: dict = {"status": target, "updated_by_id": actor.actor_id}
            if shipment is not None:
                values.update(
                    carrier=shipment.carrier,
                    tracking_number=shipment.tracking_number,
                    estimated_delivery=shipment.estimated_delivery,
                )
            if pickup is not None:
                values.update(
                    pickup_date=pickup.pickup_date,
                    pickup_location=pickup.location,
                    pickup_contact=pickup.contact,
                )
            if target in COMPLETED_STATUSES:
                values["completed_at"] = self._clock.now()

            updated = compare_and_swap(
                self._session, OrderModel, order_id, "status", current, values,
            )
            logger.info(
                "order_status_changed",
                extra={
                    "order_id": str(order_id),
                    "from_status": current,
                    "to_status": target,
                    "action": ORDER_WORKFLOW.action_for(current, target),
                },
            )
            for recipient in (updated.client_id, updated.supplier_id):
                self._notify(
                    "order_status_changed",
                    recipient,
                    order_id=str(order_id),
                    from_status=current,
                    to_status=target,
                )
            return updated.to_dto()

        with LogContext.bind(order_id=order_id, actor_id=actor.actor_id):
            return self._run("order_transition", body, order_id=order_id, target=target)

    def summarize_supplier_payouts(
        self,
        supplier_id: UUID,
        now: datetime | None = None,
    ) -> OperationResult[PayoutSummary]:
        """Pending vs. released earnings for a supplier's completed orders."""

        def body() -> PayoutSummary:
            return self._selector.supplier_payouts(
                supplier_id,
                now or self._clock.now(),
                self._config.payout_holding_days,
            )

        return self._run("supplier_payouts", body, supplier_id=supplier_id)
