"""
Credit limit arithmetic (``sourcing_modules.credit.ledger``).

Pure.  ``next_limit`` decides the new limit for an adjustment request or
raises; ``CreditService`` persists the outcome.

    SET       amount >= 0   new = amount
    INCREASE  amount > 0    new = current + amount
    DECREASE  amount > 0    new = current - amount, and new >= 0 and
                            new >= balance (new == balance is allowed)
"""

from decimal import Decimal
from typing import Any
from uuid import UUID

from sourcing_kernel.db.types import MAX_AMOUNT, ZERO, require_amount, round_money
from sourcing_kernel.exceptions import (
    CreditLimitBelowBalanceError,
    InvalidAmountError,
    ValidationError,
)
from sourcing_modules.credit.models import AdjustmentType

MIN_REASON_LENGTH = 5


def parse_adjustment_type(mode: Any) -> AdjustmentType:
    if isinstance(mode, AdjustmentType):
        return mode
    normalized = str(mode or "").strip().upper()
    try:
        return AdjustmentType(normalized)
    except ValueError:
        raise ValidationError(
            f"Invalid adjustment type {mode!r}; use SET, INCREASE or DECREASE",
            field="mode",
        ) from None


def normalize_reason(reason: str | None) -> str:
    text = (reason or "").strip()
    if len(text) < MIN_REASON_LENGTH:
        raise ValidationError(
            f"Reason must be at least {MIN_REASON_LENGTH} characters", field="reason",
        )
    return text


def next_limit(
    client_id: UUID,
    mode: AdjustmentType,
    amount: Any,
    current: Decimal,
    balance: Decimal,
) -> tuple[Decimal, Decimal]:
    """
    Returns ``(rounded amount, new limit)``.

    Raises:
        InvalidAmountError: amount not finite, out of range, zero for
            INCREASE/DECREASE, or an INCREASE past ``MAX_AMOUNT``.
        CreditLimitBelowBalanceError: a DECREASE would go below zero or
            below the committed balance.
    """
    value = round_money(require_amount(
        amount, "amount", allow_zero=mode == AdjustmentType.SET,
    ))

    if mode == AdjustmentType.SET:
        return value, value
    if mode == AdjustmentType.INCREASE:
        new_limit = round_money(current + value)
        if new_limit > MAX_AMOUNT:
            raise InvalidAmountError(
                "amount", amount, f"would raise the credit limit above {MAX_AMOUNT}",
            )
        return value, new_limit

    new_limit = round_money(current - value)
    if new_limit < ZERO or new_limit < balance:
        raise CreditLimitBelowBalanceError(
            client_id,
            current_limit=str(current),
            requested_limit=str(new_limit),
            balance=str(balance),
        )
    return value, new_limit
