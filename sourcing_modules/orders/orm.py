"""
SQLAlchemy ORM persistence models for the Orders module.

Invariants enforced
-------------------
* ``amount`` is a frozen copy of the accepted quote's ``final_price`` and
  ``supplier_amount`` of its ``supplier_price``.  These, the parties and
  the quote reference never change (``db/immutability.py``).
* Line rows are a snapshot of the accepted quote's quoted lines and are
  never updated or deleted.
* ``quote_id`` is unique: one quote produces at most one order.
* Only ``status``, shipment/pickup fields and ``completed_at`` change
  after creation, and ``status`` only through ``OrderService``.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sourcing_kernel.db.base import TrackedBase


class OrderModel(TrackedBase):
    """
    An order created by accepting a quote.

    Maps to the ``Order`` DTO in ``sourcing_modules.orders.models``.
    """

    __tablename__ = "orders"

    __table_args__ = (
        UniqueConstraint("quote_id", name="uq_order_quote"),
        Index("idx_order_client_status", "client_id", "status"),
        Index("idx_order_supplier_status", "supplier_id", "status"),
    )

    quote_id: Mapped[UUID] = mapped_column(ForeignKey("quotes.id"), nullable=False)
    rfq_id: Mapped[UUID] = mapped_column(ForeignKey("rfqs.id"), nullable=False)
    client_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    supplier_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)

    # Shipment
    carrier: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    estimated_delivery: Mapped[datetime | None] = mapped_column(nullable=True)

    # Pickup
    pickup_date: Mapped[datetime | None] = mapped_column(nullable=True)
    pickup_location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    pickup_contact: Mapped[str | None] = mapped_column(String(255), nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["OrderLineModel"]] = relationship(
        "OrderLineModel",
        back_populates="order",
        order_by="OrderLineModel.line_number",
        lazy="selectin",
    )

    def to_dto(self):
        from sourcing_modules.orders.models import (
            Order,
            OrderStatus,
            PickupDetails,
            ShipmentDetails,
        )

        shipment = None
        if self.carrier is not None or self.tracking_number is not None:
            shipment = ShipmentDetails(
                carrier=self.carrier or "",
                tracking_number=self.tracking_number or "",
                estimated_delivery=self.estimated_delivery,
            )
        pickup = None
        if self.pickup_date is not None:
            pickup = PickupDetails(
                pickup_date=self.pickup_date,
                location=self.pickup_location or "",
                contact=self.pickup_contact,
            )

        return Order(
            id=self.id,
            quote_id=self.quote_id,
            rfq_id=self.rfq_id,
            client_id=self.client_id,
            supplier_id=self.supplier_id,
            amount=self.amount,
            supplier_amount=self.supplier_amount,
            status=OrderStatus(self.status),
            created_at=self.created_at,
            lines=tuple(line.to_dto() for line in self.lines),
            shipment=shipment,
            pickup=pickup,
            completed_at=self.completed_at,
        )

    def __repr__(self) -> str:
        return f"<OrderModel {self.id} [{self.status}] {self.amount}>"


class OrderLineModel(TrackedBase):
    """A snapshot line.  Immutable from creation."""

    __tablename__ = "order_lines"

    __table_args__ = (
        UniqueConstraint("order_id", "line_number", name="uq_order_line_number"),
        Index("idx_order_line_order", "order_id"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id"), nullable=False)
    line_number: Mapped[int]
    product_id: Mapped[UUID | None] = mapped_column(ForeignKey("products.id"), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    lead_time: Mapped[str | None] = mapped_column(String(100), nullable=True)

    order: Mapped["OrderModel"] = relationship("OrderModel", back_populates="lines")

    def to_dto(self):
        from sourcing_modules.orders.models import OrderLine

        return OrderLine(
            line_number=self.line_number,
            product_id=self.product_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            lead_time=self.lead_time,
        )
