"""
Quote Domain Models.

The nouns of quoting: supplier line items, quotes, and the summaries
returned by submission, acceptance and auto-quote runs.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class QuoteStatus(Enum):
    """Quote lifecycle states."""
    PENDING_ADMIN = "PENDING_ADMIN"
    SENT_TO_CLIENT = "SENT_TO_CLIENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class QuoteType(Enum):
    """Who produced the quote."""
    AUTO = "auto"  # generated from catalog prices
    CUSTOM = "custom"  # submitted by the supplier


@dataclass(frozen=True)
class QuoteLineInput:
    """One line as submitted by a supplier.

    ``unit_price`` and ``quantity`` are taken as given and validated by
    the service, so callers may pass strings, ints or Decimals.
    """
    product_id: UUID | None
    unit_price: Any
    quantity: Any
    lead_time: str | None = None
    is_alternative: bool = False


@dataclass(frozen=True)
class QuoteLine:
    """A stored quote line."""
    line_number: int
    product_id: UUID | None
    unit_price: Decimal
    quantity: Decimal
    lead_time: str | None
    is_alternative: bool
    is_quoted: bool

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity if self.is_quoted else Decimal("0")


@dataclass(frozen=True)
class Quote:
    """A supplier quote on an RFQ."""
    id: UUID
    rfq_id: UUID
    supplier_id: UUID
    status: QuoteStatus
    quote_type: QuoteType
    supplier_price: Decimal
    margin_percent: Decimal
    final_price: Decimal
    shipping_cost: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    lead_time: str | None = None
    quoted_item_count: int = 0
    total_item_count: int = 0
    notes: str | None = None
    lines: tuple[QuoteLine, ...] = field(default_factory=tuple)

    @property
    def is_partial(self) -> bool:
        return self.quoted_item_count < self.total_item_count


@dataclass(frozen=True)
class QuoteSubmission:
    """Result of ``submit_supplier_quote``."""
    quote: Quote
    quoted_item_count: int
    total_item_count: int
    replaced_auto_quote: bool = False

    @property
    def is_partial(self) -> bool:
        return self.quoted_item_count < self.total_item_count


@dataclass(frozen=True)
class QuoteAcceptance:
    """Result of ``accept_quote``: the accepted quote and the new order."""
    quote: Quote
    order_id: UUID
    order_amount: Decimal
    rejected_sibling_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class AutoQuoteRunSummary:
    """Counters for one ``generate_auto_quotes`` run."""
    enabled: bool
    closed_expired_rfqs: int = 0
    fetched_rfqs: int = 0
    eligible_rfqs: int = 0
    generated_quotes: int = 0
    generated_quote_items: int = 0
    skipped_existing_quote_suppliers: int = 0
    skipped_unavailable_items: int = 0
    quote_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class QuoteCandidate:
    """Input to best-value comparison."""
    quote_id: UUID
    price: Decimal
    lead_time: str | int | None = None
    rating: Decimal | None = None
