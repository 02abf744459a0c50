"""
Order read paths (``sourcing_modules.orders.selector``).
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from sourcing_kernel.selectors.base import BaseSelector
from sourcing_modules.orders.models import Order, PayoutSummary
from sourcing_modules.orders.orm import OrderModel
from sourcing_modules.orders.payouts import CompletedOrder, summarize_payouts
from sourcing_modules.orders.workflows import COMPLETED_STATUSES, ORDER_WORKFLOW


class OrderSelector(BaseSelector):

    def get(self, order_id: UUID) -> Order | None:
        row = self.session.get(OrderModel, order_id)
        return row.to_dto() if row is not None else None

    def for_quote(self, quote_id: UUID) -> Order | None:
        row = self.session.execute(
            select(OrderModel).where(OrderModel.quote_id == quote_id)
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def active_for_client(self, client_id: UUID) -> list[Order]:
        rows = self.session.execute(
            select(OrderModel)
            .where(
                OrderModel.client_id == client_id,
                OrderModel.status.not_in(ORDER_WORKFLOW.terminal_states),
            )
            .order_by(OrderModel.created_at)
        ).scalars()
        return [row.to_dto() for row in rows]

    def supplier_payouts(
        self,
        supplier_id: UUID,
        now: datetime,
        holding_days: int,
    ) -> PayoutSummary:
        rows = self.session.execute(
            select(OrderModel.id, OrderModel.amount, OrderModel.completed_at)
            .where(
                OrderModel.supplier_id == supplier_id,
                OrderModel.status.in_(COMPLETED_STATUSES),
                OrderModel.completed_at.is_not(None),
            )
        ).all()
        completed = [
            CompletedOrder(order_id=row[0], amount=row[1], completed_at=row[2])
            for row in rows
        ]
        return summarize_payouts(supplier_id, completed, now, holding_days)
