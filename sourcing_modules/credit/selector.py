"""
Credit read paths (``sourcing_modules.credit.selector``).

Balance is never stored: it is the sum of the client's non-cancelled
order amounts, computed on read.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from sourcing_kernel.db.types import ZERO, round_money
from sourcing_kernel.exceptions import EntityNotFoundError
from sourcing_kernel.models.user import UserModel
from sourcing_kernel.selectors.base import BaseSelector
from sourcing_modules.credit.models import CreditAdjustment, CreditStanding
from sourcing_modules.credit.orm import CreditLimitAdjustmentModel
from sourcing_modules.orders.orm import OrderModel

# Orders in these states do not count against the client's credit
EXCLUDED_FROM_BALANCE = ("CANCELLED",)


class CreditSelector(BaseSelector):

    def balance(self, client_id: UUID) -> Decimal:
        total = self.session.execute(
            select(func.coalesce(func.sum(OrderModel.amount), 0)).where(
                OrderModel.client_id == client_id,
                OrderModel.status.not_in(EXCLUDED_FROM_BALANCE),
            )
        ).scalar_one()
        return round_money(Decimal(str(total)))

    def standing(self, client_id: UUID) -> CreditStanding:
        client = self.session.get(UserModel, client_id)
        if client is None:
            raise EntityNotFoundError("User", client_id)
        return CreditStanding(
            client_id=client_id,
            credit_limit=client.credit_limit or ZERO,
            balance=self.balance(client_id),
        )

    def available_credit(self, client_id: UUID) -> Decimal:
        """``credit_limit - balance``; negative when the client is over limit."""
        return self.standing(client_id).available

    def history(self, client_id: UUID, limit: int = 30) -> list[CreditAdjustment]:
        """Most recent adjustments first."""
        rows = self.session.execute(
            select(CreditLimitAdjustmentModel)
            .where(CreditLimitAdjustmentModel.client_id == client_id)
            .order_by(CreditLimitAdjustmentModel.sequence.desc())
            .limit(limit)
        ).scalars()
        return [row.to_dto() for row in rows]

    def last_sequence(self, client_id: UUID) -> int:
        return self.session.execute(
            select(func.coalesce(func.max(CreditLimitAdjustmentModel.sequence), 0)).where(
                CreditLimitAdjustmentModel.client_id == client_id
            )
        ).scalar_one()
