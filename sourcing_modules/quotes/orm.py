"""
SQLAlchemy ORM persistence models for the Quotes module.

Invariants enforced
-------------------
* ``final_price == round_money(supplier_price * (1 + margin_percent / 100))``
  on every row.  The service computes both together; nothing else writes
  either column.
* ``(rfq_id, supplier_id)`` is unique: at most one quote per supplier per
  RFQ.  An auto quote is overridden in place, never duplicated.
* ``supplier_price`` = sum of quoted line totals + shipping + tax.
* Quotes in ACCEPTED or REJECTED are sealed (``db/immutability.py``).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sourcing_kernel.db.base import TrackedBase
from sourcing_kernel.db.types import Percent


class QuoteModel(TrackedBase):
    """
    A supplier quote on an RFQ.

    Maps to the ``Quote`` DTO in ``sourcing_modules.quotes.models``.
    """

    __tablename__ = "quotes"

    __table_args__ = (
        UniqueConstraint("rfq_id", "supplier_id", name="uq_quote_rfq_supplier"),
        Index("idx_quote_rfq", "rfq_id"),
        Index("idx_quote_supplier", "supplier_id"),
        Index("idx_quote_status", "status"),
    )

    rfq_id: Mapped[UUID] = mapped_column(ForeignKey("rfqs.id"), nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING_ADMIN")
    quote_type: Mapped[str] = mapped_column(String(10), nullable=False, default="custom")

    supplier_price: Mapped[Decimal] = mapped_column(nullable=False)
    margin_percent: Mapped[Percent] = mapped_column(nullable=False, default=Decimal("0"))
    final_price: Mapped[Decimal] = mapped_column(nullable=False)
    shipping_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    lead_time: Mapped[str | None] = mapped_column(String(100), nullable=True)
    quoted_item_count: Mapped[int] = mapped_column(nullable=False, default=0)
    total_item_count: Mapped[int] = mapped_column(nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    lines: Mapped[list["QuoteLineModel"]] = relationship(
        "QuoteLineModel",
        back_populates="quote",
        order_by="QuoteLineModel.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dto(self):
        from sourcing_modules.quotes.models import Quote, QuoteStatus, QuoteType

        return Quote(
            id=self.id,
            rfq_id=self.rfq_id,
            supplier_id=self.supplier_id,
            status=QuoteStatus(self.status),
            quote_type=QuoteType(self.quote_type),
            supplier_price=self.supplier_price,
            margin_percent=self.margin_percent,
            final_price=self.final_price,
            shipping_cost=self.shipping_cost,
            tax_amount=self.tax_amount,
            lead_time=self.lead_time,
            quoted_item_count=self.quoted_item_count,
            total_item_count=self.total_item_count,
            notes=self.notes,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<QuoteModel {self.id} [{self.status}] {self.final_price}>"


class QuoteLineModel(TrackedBase):
    """A priced line on a quote.  Unquoted lines are kept with ``is_quoted`` False."""

    __tablename__ = "quote_lines"

    __table_args__ = (
        UniqueConstraint("quote_id", "line_number", name="uq_quote_line_number"),
        Index("idx_quote_line_quote", "quote_id"),
    )

    quote_id: Mapped[UUID] = mapped_column(ForeignKey("quotes.id"), nullable=False)
    line_number: Mapped[int]
    product_id: Mapped[UUID | None] = mapped_column(ForeignKey("products.id"), nullable=True)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    lead_time: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_alternative: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_quoted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    quote: Mapped["QuoteModel"] = relationship("QuoteModel", back_populates="lines")

    def to_dto(self):
        from sourcing_modules.quotes.models import QuoteLine

        return QuoteLine(
            line_number=self.line_number,
            product_id=self.product_id,
            unit_price=self.unit_price,
            quantity=self.quantity,
            lead_time=self.lead_time,
            is_alternative=self.is_alternative,
            is_quoted=self.is_quoted,
        )
