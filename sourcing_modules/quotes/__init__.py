"""
Quotes Module (``sourcing_modules.quotes``).

Responsibility
--------------
Supplier quotes on RFQs: submission, admin margin-and-send, client
acceptance and rejection, catalog-priced auto quotes, and best-value
comparison across competing quotes.

Invariants enforced
-------------------
* ``final_price == round2(supplier_price * (1 + margin_percent / 100))``.
* At most one quote per (RFQ, supplier); a custom submission overrides
  an open auto quote in place.
* ACCEPTED and REJECTED quotes never change.
"""

from sourcing_modules.quotes.comparison import best_value_quote_id, parse_lead_time_days
from sourcing_modules.quotes.models import (
    AutoQuoteRunSummary,
    Quote,
    QuoteAcceptance,
    QuoteCandidate,
    QuoteLine,
    QuoteLineInput,
    QuoteStatus,
    QuoteSubmission,
    QuoteType,
)
from sourcing_modules.quotes.workflows import QUOTE_WORKFLOW

__all__ = [
    "QUOTE_WORKFLOW",
    "AutoQuoteRunSummary",
    "Quote",
    "QuoteAcceptance",
    "QuoteCandidate",
    "QuoteLine",
    "QuoteLineInput",
    "QuoteStatus",
    "QuoteSubmission",
    "QuoteType",
    "best_value_quote_id",
    "parse_lead_time_days",
]
