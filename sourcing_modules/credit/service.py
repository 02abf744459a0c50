"""
Credit Service (``sourcing_modules.credit.service``).

Responsibility
--------------
Admin adjustments to a client's credit limit.  Each adjustment appends
one immutable ledger row and updates the denormalized
``UserModel.credit_limit`` in the same transaction.

Invariants enforced
-------------------
* Only admins adjust limits, and only on CLIENT users.
* The limit update is a compare-and-swap on the value read at the start
  of the operation, so two concurrent adjustments cannot both apply
  against the same starting limit.
* ``credit_limit`` always equals the ``new_limit`` of the client's latest
  ledger row.

Failure modes
-------------
* ``PermissionDeniedError`` -- actor is not an admin.
* ``ValidationError`` -- unknown mode, bad amount, short reason, target
  is not a client.
* ``CreditLimitBelowBalanceError`` -- a DECREASE below zero or below the
  committed balance.
* ``ConcurrentModificationError`` -- the limit changed underneath us.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from sourcing_config import MarketplaceConfig, get_active_config
from sourcing_kernel.db.guards import compare_and_swap, lock_for_update
from sourcing_kernel.db.types import ZERO, round_money
from sourcing_kernel.domain.actor import Actor
from sourcing_kernel.domain.clock import Clock
from sourcing_kernel.domain.results import OperationResult
from sourcing_kernel.exceptions import (
    EntityNotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from sourcing_kernel.logging_config import LogContext, get_logger
from sourcing_kernel.models.user import UserModel
from sourcing_kernel.services.base import BaseService
from sourcing_kernel.services.notification import NotificationSink
from sourcing_modules.credit.ledger import next_limit, normalize_reason, parse_adjustment_type
from sourcing_modules.credit.models import (
    CreditAdjustment,
    CreditAdjustmentOutcome,
    CreditStanding,
)
from sourcing_modules.credit.orm import CreditLimitAdjustmentModel
from sourcing_modules.credit.selector import CreditSelector

logger = get_logger("modules.credit.service")


class CreditService(BaseService):
    """Credit-limit ledger writes and credit reads."""

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
        self._selector = CreditSelector(session)

    def adjust_credit_limit(
        self,
        client_id: UUID,
        mode: Any,
        amount: Any,
        reason: str,
        actor: Actor,
    ) -> OperationResult[CreditAdjustmentOutcome]:
        """
        Apply a SET, INCREASE or DECREASE to a client's limit.

        ``mode`` is an ``AdjustmentType`` or its name in any case.
        """

        def body() -> CreditAdjustmentOutcome:
            if not actor.is_admin:
                raise PermissionDeniedError(actor.actor_id, "adjust_credit_limit", client_id)
            adjustment_type = parse_adjustment_type(mode)
            text = normalize_reason(reason)

            client = lock_for_update(self._session, UserModel, client_id)
            if client is None:
                raise EntityNotFoundError("User", client_id)
            if not client.is_client:
                raise ValidationError(
                    "Credit limit adjustments are only allowed for clients",
                    field="client_id",
                )

            previous = round_money(client.credit_limit or ZERO)
            balance = self._selector.balance(client_id)
            value, new_limit = next_limit(client_id, adjustment_type, amount, previous, balance)

            compare_and_swap(
                self._session, UserModel, client_id, "credit_limit", client.credit_limit,
                {"credit_limit": new_limit, "updated_by_id": actor.actor_id},
            )

            row = CreditLimitAdjustmentModel(
                id=uuid4(),
                client_id=client_id,
                actor_id=actor.actor_id,
                adjustment_type=adjustment_type.value,
                amount=value,
                change_amount=round_money(new_limit - previous),
                previous_limit=previous,
                new_limit=new_limit,
                reason=text,
                sequence=self._selector.last_sequence(client_id) + 1,
                created_at=self._clock.now(),
                created_by_id=actor.actor_id,
            )
            self._session.add(row)
            self._session.flush()

            logger.info(
                "credit_limit_adjusted",
                extra={
                    "client_id": str(client_id),
                    "adjustment_type": adjustment_type.value,
                    "previous_limit": str(previous),
                    "new_limit": str(new_limit),
                    "balance": str(balance),
                    "sequence": row.sequence,
                },
            )
            self._notify(
                "credit_limit_adjusted",
                client_id,
                previous_limit=str(previous),
                new_limit=str(new_limit),
            )
            return CreditAdjustmentOutcome(new_limit=new_limit, adjustment=row.to_dto())

        with LogContext.bind(client_id=client_id, actor_id=actor.actor_id):
            return self._run("credit_adjust", body, client_id=client_id, mode=mode)

    def credit_history(
        self,
        client_id: UUID,
        limit: int | None = None,
    ) -> OperationResult[list[CreditAdjustment]]:
        """Most recent adjustments first, at most ``limit`` (config default)."""

        def body() -> list[CreditAdjustment]:
            bound = limit if limit is not None else self._config.credit_history_limit
            if bound < 1:
                raise ValidationError("History limit must be at least 1", field="limit")
            return self._selector.history(client_id, bound)

        return self._run("credit_history", body, client_id=client_id)

    def credit_standing(self, client_id: UUID) -> OperationResult[CreditStanding]:

        def body() -> CreditStanding:
            return self._selector.standing(client_id)

        return self._run("credit_standing", body, client_id=client_id)

    def available_credit(self, client_id: UUID) -> OperationResult[Decimal]:
        """``credit_limit - balance`` for the client."""

        def body() -> Decimal:
            return self._selector.available_credit(client_id)

        return self._run("credit_available", body, client_id=client_id)
