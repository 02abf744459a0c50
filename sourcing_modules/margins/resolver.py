"""
Margin Resolver (``sourcing_modules.margins.resolver``).

Responsibility
--------------
Choose the margin for a quote from four sources under strict precedence.
The first match wins:

1. Manual override -- an in-memory map keyed by quote id, held by the
   admin's editing session and passed in explicitly.
2. Client margin -- the RFQ client's ``client_margin`` when not null.
3. ``max(category_margin, global_default)`` where ``category_margin`` is
   the largest percent among settings whose canonical key equals the
   quote category's canonical key (0 when none match).  Category wins
   only when strictly greater; a tie resolves to the global default.

Architecture position
---------------------
**Modules layer** -- pure function.  No session, no clock, no I/O.
``MarginService.resolve_for_quote`` loads the inputs and calls it.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID

from sourcing_kernel.db.types import ZERO
from sourcing_modules.margins.categories import canonical_category_key
from sourcing_modules.margins.models import CategoryMargin, MarginSource, ResolvedMargin


def category_margin_for(
    category: str,
    category_settings: Iterable[CategoryMargin],
) -> Decimal:
    """Largest setting whose canonical key matches ``category``; 0 if none."""
    key = canonical_category_key(category)
    best = ZERO
    for setting in category_settings:
        if canonical_category_key(setting.category) == key and setting.margin_percent > best:
            best = setting.margin_percent
    return best


def resolve_margin(
    quote_id: UUID,
    category: str,
    *,
    global_default: Decimal,
    category_settings: Iterable[CategoryMargin] = (),
    client_margin: Decimal | None = None,
    client_label: str | None = None,
    manual_overrides: Mapping[UUID, Decimal] | None = None,
) -> ResolvedMargin:
    """Resolve the margin for ``quote_id``.

    ``client_label`` is the client's display name, used in the label of a
    client-sourced margin.
    """
    if manual_overrides and quote_id in manual_overrides:
        return ResolvedMargin(
            value=manual_overrides[quote_id],
            source=MarginSource.MANUAL,
            label="Manual override",
        )

    if client_margin is not None:
        return ResolvedMargin(
            value=client_margin,
            source=MarginSource.CLIENT,
            label=f"Client margin ({client_label or 'client'})",
        )

    category_margin = category_margin_for(category, category_settings)
    if category_margin > global_default:
        return ResolvedMargin(
            value=category_margin,
            source=MarginSource.CATEGORY,
            label=f"Category margin ({category})",
        )
    return ResolvedMargin(
        value=global_default,
        source=MarginSource.GLOBAL,
        label="Global default",
    )


def item_margin(
    category: str | None,
    category_settings: Iterable[CategoryMargin],
    global_default: Decimal,
) -> Decimal:
    """Per-item margin used when no quote-level override exists.

    ``max(category setting, global default)``; an item without a category
    gets the global default.
    """
    if not category:
        return global_default
    return max(category_margin_for(category, category_settings), global_default)
