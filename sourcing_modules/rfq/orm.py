"""
SQLAlchemy ORM persistence models for the RFQ module.

Invariants enforced
-------------------
* Items are written once, with the RFQ, and never change afterwards
  (``db/immutability.py`` blocks UPDATE/DELETE on ``RFQItemModel``).
* ``(rfq_id, line_number)`` is unique; line order is the request order,
  so "first item" is well defined.
* ``auto_quote_triggered`` flips from False to True at most once.
* An OPEN RFQ past ``expires_at`` is closed by ``close_expired_rfqs``;
  ``expires_at`` is optional and never changes after creation.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sourcing_kernel.db.base import TrackedBase


class RFQModel(TrackedBase):
    """
    A request for quotation.

    Maps to the ``RFQ`` DTO in ``sourcing_modules.rfq.models``.
    """

    __tablename__ = "rfqs"

    __table_args__ = (
        Index("idx_rfq_client", "client_id"),
        Index("idx_rfq_status_created", "status", "created_at"),
        Index("idx_rfq_status_expires", "status", "expires_at"),
    )

    client_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="OPEN")
    delivery_location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    auto_quote_triggered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)

    items: Mapped[list["RFQItemModel"]] = relationship(
        "RFQItemModel",
        back_populates="rfq",
        order_by="RFQItemModel.line_number",
        lazy="selectin",
    )

    def to_dto(self):
        from sourcing_modules.rfq.models import RFQ, RFQStatus

        return RFQ(
            id=self.id,
            client_id=self.client_id,
            status=RFQStatus(self.status),
            items=tuple(item.to_dto() for item in self.items),
            created_at=self.created_at,
            delivery_location=self.delivery_location,
            auto_quote_triggered=self.auto_quote_triggered,
            expires_at=self.expires_at,
        )

    def __repr__(self) -> str:
        return f"<RFQModel {self.id} [{self.status}]>"


class RFQItemModel(TrackedBase):
    """A requested product line.  Immutable after creation."""

    __tablename__ = "rfq_items"

    __table_args__ = (
        UniqueConstraint("rfq_id", "line_number", name="uq_rfq_item_line"),
        Index("idx_rfq_item_rfq", "rfq_id"),
    )

    rfq_id: Mapped[UUID] = mapped_column(ForeignKey("rfqs.id"), nullable=False)
    line_number: Mapped[int]
    product_id: Mapped[UUID | None] = mapped_column(ForeignKey("products.id"), nullable=True)
    quantity: Mapped[int]

    rfq: Mapped["RFQModel"] = relationship("RFQModel", back_populates="items")

    def to_dto(self):
        from sourcing_modules.rfq.models import RFQItem

        return RFQItem(
            id=self.id,
            line_number=self.line_number,
            product_id=self.product_id,
            quantity=self.quantity,
        )

    def __repr__(self) -> str:
        return f"<RFQItemModel {self.rfq_id}#{self.line_number} x{self.quantity}>"
