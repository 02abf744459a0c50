"""
Credit Module (``sourcing_modules.credit``).

Responsibility
--------------
The client credit ledger: admin adjustments to credit limits, the
append-only history, and available credit
(``credit_limit - balance`` where balance is the sum of the client's
non-cancelled order amounts).

Invariants enforced
-------------------
* Ledger rows are never updated or deleted.
* A decrease may not push the limit below zero or below the balance.
"""

from sourcing_modules.credit.ledger import next_limit, parse_adjustment_type
from sourcing_modules.credit.models import (
    AdjustmentType,
    CreditAdjustment,
    CreditAdjustmentOutcome,
    CreditStanding,
)

__all__ = [
    "AdjustmentType",
    "CreditAdjustment",
    "CreditAdjustmentOutcome",
    "CreditStanding",
    "next_limit",
    "parse_adjustment_type",
]
