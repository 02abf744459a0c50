"""
Credit Domain Models.

The nouns of the credit ledger: adjustment modes, ledger entries, and a
client's credit standing.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class AdjustmentType(Enum):
    """How an adjustment derives the new limit from the current one."""
    SET = "SET"
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"


@dataclass(frozen=True)
class CreditAdjustment:
    """One immutable ledger entry."""
    id: UUID
    client_id: UUID
    adjustment_type: AdjustmentType
    amount: Decimal
    change_amount: Decimal
    previous_limit: Decimal
    new_limit: Decimal
    reason: str
    actor_id: UUID
    created_at: datetime
    sequence: int


@dataclass(frozen=True)
class CreditAdjustmentOutcome:
    """Result of ``adjust_credit_limit``."""
    new_limit: Decimal
    adjustment: CreditAdjustment


@dataclass(frozen=True)
class CreditStanding:
    """A client's limit, committed balance and what is left."""
    client_id: UUID
    credit_limit: Decimal
    balance: Decimal

    @property
    def available(self) -> Decimal:
        return self.credit_limit - self.balance
