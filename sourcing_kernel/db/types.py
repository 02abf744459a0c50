"""
Module: sourcing_kernel.db.types
Responsibility: Annotated type aliases and utility functions for monetary
    and percentage values.  Centralizes precision, rounding, and input
    coercion so every model and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats in the kernel.  Inputs arriving as float/int/str are
      converted with ``to_decimal`` (via ``str``) before any arithmetic.
    - ``round_money`` is the ONLY sanctioned rounding function; the
      marketplace prices in two decimal places, ROUND_HALF_UP.

Failure modes:
    - InvalidAmountError / InvalidMarginError raised by the ``require_*``
      helpers on non-finite, negative, or out-of-range input.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String

from sourcing_kernel.exceptions import InvalidAmountError, InvalidMarginError

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Percentage (margins): 5 digits, 2 places is enough for [0, 100.00]
Percent = Annotated[Decimal, Numeric(7, 2)]

ShortCode = Annotated[str, String(50)]

LongText = Annotated[str, String(4000)]


MONEY_DECIMAL_PLACES = 2
PERCENT_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Largest single amount accepted from callers.  Sums and marked-up prices
# built from such amounts stay well inside Numeric(38, 9).
MAX_AMOUNT = Decimal("1000000000000000")


def to_decimal(value: Any) -> Decimal | None:
    """
    Coerce a user-supplied number to Decimal.

    Returns None when the value cannot be interpreted as a number, so
    callers can raise the validation error that fits their field.
    Booleans are rejected even though they are ints.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None


def is_finite_number(value: Any) -> bool:
    dec = to_decimal(value)
    return dec is not None and dec.is_finite()


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the specified decimal places.

    This is the ONLY sanctioned rounding function for prices, limits and
    margins in the kernel.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "0"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def require_margin_percent(value: Any) -> Decimal:
    """
    Validate a margin percentage: finite and within [0, 100].

    Returns the value rounded to two decimal places.

    Raises:
        InvalidMarginError: on any invalid input.
    """
    dec = to_decimal(value)
    if dec is None or not dec.is_finite():
        raise InvalidMarginError(value)
    if dec < ZERO or dec > HUNDRED:
        raise InvalidMarginError(value)
    return round_money(dec, PERCENT_DECIMAL_PLACES)


def require_amount(
    value: Any,
    field: str,
    *,
    allow_zero: bool = True,
) -> Decimal:
    """
    Validate a monetary amount: finite, non-negative (or positive) and at
    most ``MAX_AMOUNT``.

    Raises:
        InvalidAmountError: if not finite, out of range, or zero when not
            allowed.
    """
    dec = to_decimal(value)
    if dec is None or not dec.is_finite():
        raise InvalidAmountError(field, value, "must be a finite number")
    if dec < ZERO:
        raise InvalidAmountError(field, value, "must not be negative")
    if dec > MAX_AMOUNT:
        raise InvalidAmountError(field, value, f"must not exceed {MAX_AMOUNT}")
    if not allow_zero and dec == ZERO:
        raise InvalidAmountError(field, value, "must be greater than zero")
    return dec