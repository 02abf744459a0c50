"""
Configuration schema (``sourcing_config.schema``).

Frozen dataclasses describing the marketplace's tunable policy.  Every
instance is validated on construction, so a ``MarketplaceConfig`` that
exists is a ``MarketplaceConfig`` that is usable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

ALLOWED_INITIAL_ORDER_STATUSES = ("PENDING_ADMIN_CONFIRMATION", "PENDING_PAYMENT")
MAX_AUTO_QUOTE_BATCH = 500


def _require_percent(name: str, value: Decimal) -> None:
    if not value.is_finite() or value < 0 or value > 100:
        raise ValueError(f"{name} must be within [0, 100], got {value}")


@dataclass(frozen=True)
class AutoQuoteConfig:
    """Knobs for the scheduled auto-quote generator."""

    enabled: bool = True
    delay_minutes: int = 30
    lead_time_days: int = 3
    include_limited_stock: bool = False
    batch_limit: int = 100

    def __post_init__(self) -> None:
        if self.delay_minutes < 1:
            raise ValueError(f"auto_quote.delay_minutes must be >= 1, got {self.delay_minutes}")
        if self.lead_time_days < 1:
            raise ValueError(f"auto_quote.lead_time_days must be >= 1, got {self.lead_time_days}")
        if not 1 <= self.batch_limit <= MAX_AUTO_QUOTE_BATCH:
            raise ValueError(
                f"auto_quote.batch_limit must be within [1, {MAX_AUTO_QUOTE_BATCH}], "
                f"got {self.batch_limit}"
            )


@dataclass(frozen=True)
class MarketplaceConfig:
    """The complete runtime configuration.

    ``checksum`` identifies the source document; it is empty for
    instances built directly in code.
    """

    default_margin_percent: Decimal = Decimal("15")
    default_category: str = "Office"
    payout_holding_days: int = 7
    credit_history_limit: int = 30
    enforce_credit_on_acceptance: bool = True
    order_initial_status: str = "PENDING_ADMIN_CONFIRMATION"
    auto_quote: AutoQuoteConfig = field(default_factory=AutoQuoteConfig)
    checksum: str = ""

    def __post_init__(self) -> None:
        _require_percent("default_margin_percent", self.default_margin_percent)
        if not self.default_category.strip():
            raise ValueError("default_category must not be blank")
        if self.payout_holding_days < 0:
            raise ValueError(
                f"payout_holding_days must be >= 0, got {self.payout_holding_days}"
            )
        if self.credit_history_limit < 1:
            raise ValueError(
                f"credit_history_limit must be >= 1, got {self.credit_history_limit}"
            )
        if self.order_initial_status not in ALLOWED_INITIAL_ORDER_STATUSES:
            raise ValueError(
                f"order_initial_status must be one of {ALLOWED_INITIAL_ORDER_STATUSES}, "
                f"got {self.order_initial_status!r}"
            )
