"""
SQLAlchemy ORM persistence models for the Credit module.

Invariants enforced
-------------------
* Ledger rows are append-only (``db/immutability.py`` blocks UPDATE and
  DELETE).
* ``(client_id, sequence)`` is unique.  Two adjustments racing on one
  client cannot both claim the same position in the history.
* ``new_limit - previous_limit == change_amount`` on every row, and each
  row's ``previous_limit`` is the ``new_limit`` of the row before it.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sourcing_kernel.db.base import TrackedBase


class CreditLimitAdjustmentModel(TrackedBase):
    """
    One change to a client's credit limit.

    Maps to the ``CreditAdjustment`` DTO in ``sourcing_modules.credit.models``.
    """

    __tablename__ = "credit_limit_adjustments"

    __table_args__ = (
        UniqueConstraint("client_id", "sequence", name="uq_credit_adjustment_sequence"),
        Index("idx_credit_adjustment_client", "client_id", "sequence"),
    )

    client_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    adjustment_type: Mapped[str] = mapped_column(String(10), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    change_amount: Mapped[Decimal] = mapped_column(nullable=False)
    previous_limit: Mapped[Decimal] = mapped_column(nullable=False)
    new_limit: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str] = mapped_column(String(1000), nullable=False)
    sequence: Mapped[int] = mapped_column(nullable=False)

    def to_dto(self):
        from sourcing_modules.credit.models import AdjustmentType, CreditAdjustment

        return CreditAdjustment(
            id=self.id,
            client_id=self.client_id,
            adjustment_type=AdjustmentType(self.adjustment_type),
            amount=self.amount,
            change_amount=self.change_amount,
            previous_limit=self.previous_limit,
            new_limit=self.new_limit,
            reason=self.reason,
            actor_id=self.actor_id,
            created_at=self.created_at,
            sequence=self.sequence,
        )

    def __repr__(self) -> str:
        return (
            f"<CreditLimitAdjustment {self.client_id}#{self.sequence} "
            f"{self.adjustment_type} {self.previous_limit}->{self.new_limit}>"
        )
