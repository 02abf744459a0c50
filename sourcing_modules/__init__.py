"""
Sourcing Modules.

Thin orchestration layers over the Sourcing Kernel.  Each module contains:
- Domain models (the nouns, as frozen DTOs)
- Workflows (state machines) where the entity has a lifecycle
- ORM persistence models
- A service facade that owns the transaction boundary

Modules:
- Margins: margin resolution and margin settings
- RFQ: requests for quotation
- Quotes: supplier quotes, auto quotes, best-value comparison
- Orders: order lifecycle and supplier payouts
- Credit: client credit-limit ledger
"""

from sourcing_modules import credit, margins, orders, quotes, rfq

__all__ = ["credit", "margins", "orders", "quotes", "rfq"]
