"""
Supplier payout classification (``sourcing_modules.orders.payouts``).

A completed order (DELIVERED or COMPLETED) counts its ``amount`` toward
the supplier's payouts.  The money is held for a fixed period after
completion; before ``completed_at + holding period`` it is pending, from
then on it is released.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sourcing_kernel.db.types import ZERO, round_money
from sourcing_modules.orders.models import PayoutSummary


@dataclass(frozen=True)
class CompletedOrder:
    order_id: UUID
    amount: Decimal
    completed_at: datetime


def payout_eligible_at(completed_at: datetime, holding_days: int) -> datetime:
    return completed_at + timedelta(days=holding_days)


def is_payout_released(completed_at: datetime, now: datetime, holding_days: int) -> bool:
    return now >= payout_eligible_at(completed_at, holding_days)


def summarize_payouts(
    supplier_id: UUID,
    orders: Iterable[CompletedOrder],
    now: datetime,
    holding_days: int,
) -> PayoutSummary:
    pending_total = ZERO
    released_total = ZERO
    pending_count = 0
    released_count = 0
    next_release_at: datetime | None = None

    for order in orders:
        if is_payout_released(order.completed_at, now, holding_days):
            released_total += order.amount
            released_count += 1
            continue
        pending_total += order.amount
        pending_count += 1
        eligible_at = payout_eligible_at(order.completed_at, holding_days)
        if next_release_at is None or eligible_at < next_release_at:
            next_release_at = eligible_at

    return PayoutSummary(
        supplier_id=supplier_id,
        pending_total=round_money(pending_total),
        released_total=round_money(released_total),
        pending_count=pending_count,
        released_count=released_count,
        next_release_at=next_release_at,
    )
