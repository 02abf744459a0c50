"""
Auto-quote planning (``sourcing_modules.quotes.auto_quote``).

Responsibility
--------------
Decide which catalog-priced quotes to generate for an RFQ that no
supplier has answered within the configured delay.  Pure: the caller
(``QuoteService.generate_auto_quotes``) loads RFQs, products and
settings, and persists the plans through the normal quote pricing path.

Rules
-----
* An item whose product is missing, priced at or below zero, or out of
  stock is skipped.  Out of stock means availability ``OUT_OF_STOCK`` or
  a tracked stock count at or below zero.
* Limited stock (availability ``LIMITED_STOCK``/``LIMITED``, or a tracked
  count below the requested quantity) is skipped unless
  ``include_limited_stock`` is set.
* A supplier that already holds a quote on the RFQ is skipped.
* Item margin = ``max(category setting, global default)``.  Quote margin =
  supplier-value-weighted average of the item margins, two places;
  the global default when the supplier value is zero.
* Quote lead time = longest item lead time, defaulting per product to
  ``default_lead_time_days``.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sourcing_kernel.db.types import ZERO, round_money
from sourcing_kernel.domain.pricing import weighted_margin
from sourcing_kernel.models.product import (
    ProductAvailability,
    ProductModel,
    normalize_availability,
)
from sourcing_modules.margins.models import CategoryMargin
from sourcing_modules.margins.resolver import item_margin
from sourcing_modules.rfq.models import RFQItem


@dataclass(frozen=True)
class AutoQuoteLine:
    product_id: UUID
    quantity: int
    unit_price: Decimal
    margin_percent: Decimal
    lead_time_days: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class AutoQuotePlan:
    """One quote to generate: a supplier and its priced lines."""
    supplier_id: UUID
    lines: tuple[AutoQuoteLine, ...]
    margin_percent: Decimal

    @property
    def supplier_price(self) -> Decimal:
        return round_money(sum((line.line_total for line in self.lines), ZERO))

    @property
    def lead_time_days(self) -> int:
        return max(line.lead_time_days for line in self.lines)

    @property
    def lead_time_label(self) -> str:
        return lead_time_label(self.lead_time_days)


@dataclass(frozen=True)
class RFQPlan:
    """Everything decided for one RFQ."""
    quotes: tuple[AutoQuotePlan, ...] = ()
    skipped_existing_quote_suppliers: int = 0
    skipped_unavailable_items: int = 0


def lead_time_label(days: int) -> str:
    return "1 day (auto)" if days == 1 else f"{days} days (auto)"


def is_available(product: ProductModel, quantity: int, include_limited_stock: bool) -> bool:
    availability = normalize_availability(product.availability)
    if availability == ProductAvailability.OUT_OF_STOCK:
        return False
    if product.stock is not None and product.stock <= 0:
        return False
    limited = availability == ProductAvailability.LIMITED_STOCK or (
        product.stock is not None and product.stock < quantity
    )
    return include_limited_stock or not limited


def plan_rfq(
    items: Sequence[RFQItem],
    products: dict[UUID, ProductModel],
    *,
    existing_supplier_ids: Iterable[UUID],
    category_settings: Sequence[CategoryMargin],
    global_default: Decimal,
    include_limited_stock: bool,
    default_lead_time_days: int,
) -> RFQPlan:
    existing = set(existing_supplier_ids)
    skipped_existing = 0
    skipped_unavailable = 0
    groups: dict[UUID, list[AutoQuoteLine]] = {}

    for item in items:
        product = products.get(item.product_id) if item.product_id is not None else None
        if product is None:
            skipped_unavailable += 1
            continue
        if product.supplier_id in existing:
            skipped_existing += 1
            continue
        if not is_available(product, item.quantity, include_limited_stock):
            skipped_unavailable += 1
            continue
        if product.supplier_price is None or product.supplier_price <= ZERO:
            skipped_unavailable += 1
            continue

        groups.setdefault(product.supplier_id, []).append(AutoQuoteLine(
            product_id=product.id,
            quantity=item.quantity,
            unit_price=round_money(product.supplier_price),
            margin_percent=item_margin(product.category, category_settings, global_default),
            lead_time_days=max(1, product.lead_time_days or default_lead_time_days),
        ))

    plans = []
    for supplier_id, lines in groups.items():
        margin = weighted_margin(
            ((line.margin_percent, line.line_total) for line in lines),
            fallback=global_default,
        )
        plans.append(AutoQuotePlan(
            supplier_id=supplier_id,
            lines=tuple(lines),
            margin_percent=margin,
        ))

    return RFQPlan(
        quotes=tuple(plans),
        skipped_existing_quote_suppliers=skipped_existing,
        skipped_unavailable_items=skipped_unavailable,
    )
