"""
Pricing arithmetic (``sourcing_kernel.domain.pricing``).

Pure functions shared by the margin resolver, the quote lifecycle, and the
auto-quote generator.  All inputs and outputs are ``Decimal``; rounding
goes through ``round_money``.
"""

from collections.abc import Iterable
from decimal import Decimal

from sourcing_kernel.db.types import HUNDRED, ZERO, round_money


def apply_margin(supplier_price: Decimal, margin_percent: Decimal) -> Decimal:
    """
    Client-facing price for a supplier price and margin.

    ``round2(supplier_price * (1 + margin_percent / 100))``.  Reapplying the
    same margin to the same supplier price always yields the same result.
    """
    return round_money(supplier_price * (Decimal("1") + margin_percent / HUNDRED))


def weighted_margin(
    weighted: Iterable[tuple[Decimal, Decimal]],
    fallback: Decimal,
) -> Decimal:
    """
    Value-weighted average margin over ``(margin_percent, weight)`` pairs.

    Rounded to two places; ``fallback`` when the total weight is zero.
    """
    numerator = ZERO
    total = ZERO
    for margin, weight in weighted:
        numerator += margin * weight
        total += weight
    if total <= ZERO:
        return fallback
    return round_money(numerator / total)
