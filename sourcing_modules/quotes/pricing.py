"""
Quote line validation and supplier pricing (``sourcing_modules.quotes.pricing``).

Pure.  Custom submissions and auto quotes both price through here, so a
quote's ``supplier_price`` means the same thing whoever produced it:

    supplier_price = round2(sum(unit_price * quantity over quoted lines)
                            + shipping_cost + tax_amount)

A line is *quoted* when its unit price is greater than zero and it
carries a lead time.  Unquoted lines are kept (the supplier saw the item
and declined it) but contribute nothing.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any

from sourcing_kernel.db.types import MAX_AMOUNT, ZERO, require_amount, round_money, to_decimal
from sourcing_kernel.exceptions import InvalidQuoteLineError
from sourcing_modules.quotes.comparison import parse_lead_time_days
from sourcing_modules.quotes.models import QuoteLine, QuoteLineInput

MAX_QUANTITY = Decimal("1000000")


def _as_input(item: Any) -> QuoteLineInput:
    if isinstance(item, QuoteLineInput):
        return item
    if isinstance(item, dict):
        return QuoteLineInput(
            product_id=item.get("product_id"),
            unit_price=item.get("unit_price"),
            quantity=item.get("quantity"),
            lead_time=item.get("lead_time"),
            is_alternative=bool(item.get("is_alternative", False)),
        )
    raise InvalidQuoteLineError(None, f"unsupported line item {type(item).__name__}")


def _finite(value: Any, index: int, field: str, maximum: Decimal) -> Decimal:
    dec = to_decimal(value)
    if dec is None or not dec.is_finite():
        raise InvalidQuoteLineError(index, f"{field} must be a finite number")
    if dec < ZERO:
        raise InvalidQuoteLineError(index, f"{field} must not be negative")
    if dec > maximum:
        raise InvalidQuoteLineError(index, f"{field} must not exceed {maximum}")
    return dec


def validate_line_items(line_items: Sequence[Any]) -> tuple[QuoteLine, ...]:
    """
    Validate submitted lines and number them in submission order.

    Raises:
        InvalidQuoteLineError: no lines, a non-finite, negative or oversized
            number, a quoted line with zero quantity, nothing quoted at all,
            or a quoted total above ``MAX_AMOUNT``.
    """
    if not line_items:
        raise InvalidQuoteLineError(None, "a quote needs at least one line item")

    lines = []
    for index, raw in enumerate(line_items):
        item = _as_input(raw)
        unit_price = _finite(item.unit_price, index, "unit price", MAX_AMOUNT)
        quantity = _finite(item.quantity, index, "quantity", MAX_QUANTITY)
        lead_time = (item.lead_time or "").strip() or None
        is_quoted = unit_price > ZERO and lead_time is not None
        if is_quoted and quantity <= ZERO:
            raise InvalidQuoteLineError(index, "quantity must be greater than zero")
        lines.append(QuoteLine(
            line_number=index + 1,
            product_id=item.product_id,
            unit_price=unit_price,
            quantity=quantity,
            lead_time=lead_time,
            is_alternative=item.is_alternative,
            is_quoted=is_quoted,
        ))

    if not any(line.is_quoted for line in lines):
        raise InvalidQuoteLineError(
            None, "at least one item must be quoted with a price and a lead time",
        )
    goods = sum((line.line_total for line in lines), ZERO)
    if goods > MAX_AMOUNT:
        raise InvalidQuoteLineError(None, f"quoted total must not exceed {MAX_AMOUNT}")
    return tuple(lines)


def supplier_price(lines: Iterable[QuoteLine], shipping_cost: Decimal, tax_amount: Decimal) -> Decimal:
    goods = sum((line.line_total for line in lines), ZERO)
    return round_money(goods + shipping_cost + tax_amount)


def require_charges(shipping_cost: Any, tax_amount: Any) -> tuple[Decimal, Decimal]:
    """Shipping and tax: finite and not negative, rounded to two places."""
    return (
        round_money(require_amount(shipping_cost, "shipping_cost")),
        round_money(require_amount(tax_amount, "tax_amount")),
    )


def summary_lead_time(lines: Iterable[QuoteLine]) -> str | None:
    """The slowest quoted line's lead time label."""
    quoted = [line for line in lines if line.is_quoted and line.lead_time]
    if not quoted:
        return None
    return max(quoted, key=lambda line: parse_lead_time_days(line.lead_time)).lead_time
