"""
Margins Module (``sourcing_modules.margins``).

Responsibility
--------------
Decide which margin applies to a quote and persist the settings the
decision reads: per-category margins, the global default, and
client-specific margins.

Invariants enforced
-------------------
* Precedence: manual override, then client margin, then the larger of
  category margin and global default (ties go to the global default).
* Margin percentages lie in [0, 100] with two decimal places.
"""

from sourcing_modules.margins.categories import (
    CategoryKey,
    canonical_category_key,
    category_storage_key,
)
from sourcing_modules.margins.models import (
    CategoryMargin,
    ClientMargin,
    MarginSetting,
    MarginSource,
    ResolvedMargin,
)
from sourcing_modules.margins.resolver import category_margin_for, item_margin, resolve_margin

__all__ = [
    "CategoryKey",
    "CategoryMargin",
    "ClientMargin",
    "MarginSetting",
    "MarginSource",
    "ResolvedMargin",
    "canonical_category_key",
    "category_margin_for",
    "category_storage_key",
    "item_margin",
    "resolve_margin",
]
