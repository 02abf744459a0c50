"""
Module: sourcing_kernel.models.product
Responsibility: ORM persistence for supplier catalog products.  The kernel
    only reads products: the quote category comes from here, and the
    auto-quote generator prices from ``supplier_price``.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from sourcing_kernel.db.base import TrackedBase


class ProductAvailability(str, Enum):
    """Stock signal published by the supplier."""

    IN_STOCK = "IN_STOCK"
    LIMITED_STOCK = "LIMITED_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


def normalize_availability(value: str | None) -> ProductAvailability:
    """Map free-form availability text onto ``ProductAvailability``.

    ``"limited"`` is accepted as a legacy spelling of LIMITED_STOCK; any
    unknown value counts as in stock.
    """
    normalized = (value or "").strip().upper()
    if normalized == "OUT_OF_STOCK":
        return ProductAvailability.OUT_OF_STOCK
    if normalized in ("LIMITED_STOCK", "LIMITED"):
        return ProductAvailability.LIMITED_STOCK
    return ProductAvailability.IN_STOCK


class ProductModel(TrackedBase):
    """A product a supplier offers through the catalog."""

    __tablename__ = "products"

    __table_args__ = (
        Index("idx_product_supplier", "supplier_id"),
        Index("idx_product_category", "category"),
    )

    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    supplier_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    availability: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProductAvailability.IN_STOCK.value,
    )
    # None means the supplier does not track a count
    stock: Mapped[int | None] = mapped_column(nullable=True)
    lead_time_days: Mapped[int | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Product {self.name} [{self.category}]>"
