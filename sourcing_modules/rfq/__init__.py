"""
RFQ Module (``sourcing_modules.rfq``).

Responsibility
--------------
Requests for quotation: a client's list of products and quantities.  The
quote lifecycle reads RFQs and updates their status.

Invariants enforced
-------------------
* RFQ items never change after creation.
* An RFQ moves to QUOTED only once one of its quotes is SENT_TO_CLIENT.
"""

from sourcing_modules.rfq.models import RFQ, RFQItem, RFQStatus
from sourcing_modules.rfq.workflows import RFQ_WORKFLOW

__all__ = [
    "RFQ",
    "RFQItem",
    "RFQStatus",
    "RFQ_WORKFLOW",
]
