"""
RFQ Service (``sourcing_modules.rfq.service``).

Responsibility
--------------
Records client RFQs and moves them through ``RFQ_WORKFLOW``.  The quote
lifecycle drives most RFQ status changes through ``move_rfq``, inside the
quote operation's own transaction.

Invariants enforced
-------------------
* Items are written once, at creation.
* Every status change is checked against ``RFQ_WORKFLOW`` and applied
  with a status compare-and-swap.  The one bulk change,
  ``close_expired_rfqs``, is guarded by ``status = OPEN`` in its WHERE.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from sourcing_kernel.db.guards import compare_and_swap, lock_for_update
from sourcing_kernel.domain.actor import Actor
from sourcing_kernel.domain.results import OperationResult
from sourcing_kernel.exceptions import (
    EntityNotFoundError,
    InvalidStatusTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from sourcing_kernel.logging_config import LogContext, get_logger
from sourcing_kernel.models.product import ProductModel
from sourcing_kernel.models.user import UserModel, UserRole
from sourcing_kernel.services.base import BaseService
from sourcing_modules.rfq.models import RFQ
from sourcing_modules.rfq.orm import RFQItemModel, RFQModel
from sourcing_modules.rfq.workflows import RFQ_WORKFLOW

logger = get_logger("modules.rfq.service")

MAX_ITEM_QUANTITY = 1_000_000


def move_rfq(
    session: Session,
    rfq_id: UUID,
    target: str,
    *,
    already_ok: bool = False,
) -> bool:
    """
    Move an RFQ to ``target`` within the caller's transaction.

    Returns True when it moved.  With ``already_ok`` an RFQ already in
    ``target`` is left alone and False is returned; otherwise that is an
    invalid (self) transition.

    Raises:
        EntityNotFoundError: no such RFQ.
        InvalidStatusTransitionError: the workflow forbids the move.
    """
    rfq = lock_for_update(session, RFQModel, rfq_id)
    if rfq is None:
        raise EntityNotFoundError("RFQ", rfq_id)
    current = rfq.status
    if current == target and already_ok:
        return False
    if not RFQ_WORKFLOW.can_transition(current, target):
        raise InvalidStatusTransitionError("RFQ", rfq_id, current, target)
    compare_and_swap(session, RFQModel, rfq_id, "status", current, {"status": target})
    logger.info(
        "rfq_status_changed",
        extra={"rfq_id": str(rfq_id), "from_status": current, "to_status": target},
    )
    return True


def close_expired_rfqs(session: Session, now: datetime) -> int:
    """
    Close every OPEN RFQ whose ``expires_at`` has passed, in the caller's
    transaction.  Returns how many were closed.
    """
    expired = session.execute(
        select(RFQModel)
        .where(
            RFQModel.status == "OPEN",
            RFQModel.expires_at.is_not(None),
            RFQModel.expires_at <= now,
        )
        .with_for_update()
    ).scalars().all()
    for rfq in expired:
        rfq.status = "CLOSED"
        rfq.updated_at = now
    session.flush()
    if expired:
        logger.info("expired_rfqs_closed", extra={"closed_count": len(expired)})
    return len(expired)


class RFQService(BaseService):
    """Creates and cancels RFQs."""

    def create_rfq(
        self,
        client_id: UUID,
        items: Sequence[dict[str, Any]],
        delivery_location: str | None = None,
        expires_at: datetime | None = None,
    ) -> OperationResult[RFQ]:
        """
        Record a new RFQ in ``OPEN``.

        Each item is ``{"product_id": UUID, "quantity": int}``; the list
        order is kept as the line order.  ``expires_at``, when given, must
        lie in the future.
        """

        def body() -> RFQ:
            client = self._session.get(UserModel, client_id)
            if client is None:
                raise EntityNotFoundError("User", client_id)
            if client.role != UserRole.CLIENT.value:
                raise ValidationError(f"User {client_id} is not a client", field="client_id")
            if not items:
                raise ValidationError("An RFQ needs at least one item", field="items")
            now = self._clock.now()
            if expires_at is not None and expires_at <= now:
                raise ValidationError("expires_at must be in the future", field="expires_at")

            rfq = RFQModel(
                id=uuid4(),
                client_id=client_id,
                status=RFQ_WORKFLOW.initial_state,
                delivery_location=delivery_location,
                expires_at=expires_at,
                created_at=now,
                created_by_id=client_id,
            )
            self._session.add(rfq)
            for index, item in enumerate(items):
                quantity = item.get("quantity")
                if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                    raise ValidationError(
                        f"Item {index}: quantity must be a positive integer", field="quantity",
                    )
                if quantity > MAX_ITEM_QUANTITY:
                    raise ValidationError(
                        f"Item {index}: quantity must not exceed {MAX_ITEM_QUANTITY}",
                        field="quantity",
                    )
                product_id = item.get("product_id")
                if product_id is not None and self._session.get(ProductModel, product_id) is None:
                    raise EntityNotFoundError("Product", product_id)
                self._session.add(RFQItemModel(
                    id=uuid4(),
                    rfq_id=rfq.id,
                    line_number=index + 1,
                    product_id=product_id,
                    quantity=quantity,
                    created_by_id=client_id,
                ))
            self._session.flush()
            self._session.refresh(rfq)
            logger.info(
                "rfq_created",
                extra={"rfq_id": str(rfq.id), "item_count": len(items)},
            )
            return rfq.to_dto()

        with LogContext.bind(client_id=client_id):
            return self._run("rfq_create", body, client_id=client_id)

    def cancel_rfq(self, rfq_id: UUID, actor: Actor) -> OperationResult[RFQ]:
        """Cancel an OPEN or QUOTED RFQ.  Only its client or an admin may."""

        def body() -> RFQ:
            rfq = self._session.get(RFQModel, rfq_id)
            if rfq is None:
                raise EntityNotFoundError("RFQ", rfq_id)
            if not actor.is_admin and actor.actor_id != rfq.client_id:
                raise PermissionDeniedError(actor.actor_id, "cancel_rfq", rfq_id)
            move_rfq(self._session, rfq_id, "CANCELLED")
            return self._session.get(RFQModel, rfq_id).to_dto()

        with LogContext.bind(actor_id=actor.actor_id):
            return self._run("rfq_cancel", body, rfq_id=rfq_id)
