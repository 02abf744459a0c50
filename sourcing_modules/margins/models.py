"""
Margin Domain Models.

The nouns of margin resolution: where a margin came from, and what it is.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class MarginSource(Enum):
    """Which source supplied the resolved margin, in precedence order."""
    MANUAL = "manual"
    CLIENT = "client"
    CATEGORY = "category"
    GLOBAL = "global"


@dataclass(frozen=True)
class ResolvedMargin:
    """The margin to apply to one quote, with its provenance."""
    value: Decimal
    source: MarginSource
    label: str


@dataclass(frozen=True)
class CategoryMargin:
    """A per-category margin setting as read from storage."""
    category: str
    margin_percent: Decimal


@dataclass(frozen=True)
class MarginSetting:
    """Result of a margin write."""
    id: UUID
    category: str | None
    margin_percent: Decimal


@dataclass(frozen=True)
class ClientMargin:
    """Result of setting or clearing a client-specific margin."""
    client_id: UUID
    margin_percent: Decimal | None
