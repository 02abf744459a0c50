"""
Category canonicalisation (``sourcing_modules.margins.categories``).

Margin settings, products and RFQs spell the same category several ways
("IT Supplies", "IT", "it_supplies").  ``canonical_category_key`` is the
one place that decides whether two spellings name the same category.

Known categories map onto the closed ``CategoryKey`` enumeration.  Any
other string falls back to its normalised form: lower-cased, with every
character other than a-z and 0-9 removed.  Two strings therefore match
when they differ only in case, spacing or punctuation
("I.T.", "Office/Supplies").
"""

import re
from enum import Enum


class CategoryKey(str, Enum):
    """Marketplace categories with a fixed identity."""

    OFFICE = "office"
    IT_SUPPLIES = "it_supplies"
    BREAKROOM = "breakroom"
    JANITORIAL = "janitorial"
    MAINTENANCE = "maintenance"


_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")

_ALIASES: dict[str, CategoryKey] = {
    "office": CategoryKey.OFFICE,
    "officesupplies": CategoryKey.OFFICE,
    "it": CategoryKey.IT_SUPPLIES,
    "itsupplies": CategoryKey.IT_SUPPLIES,
    "breakroom": CategoryKey.BREAKROOM,
    "breakroomsupplies": CategoryKey.BREAKROOM,
    "janitorial": CategoryKey.JANITORIAL,
    "janitorialsupplies": CategoryKey.JANITORIAL,
    "maintenance": CategoryKey.MAINTENANCE,
    "maintenancesupplies": CategoryKey.MAINTENANCE,
}


def normalize_category(raw: str) -> str:
    return _NON_ALPHANUMERIC.sub("", raw.lower())


def canonical_category_key(raw: str) -> CategoryKey | str:
    """
    Canonical key for a category name.

    Returns a ``CategoryKey`` member for known aliases, otherwise the
    normalised string.
    """
    normalized = normalize_category(raw)
    return _ALIASES.get(normalized, normalized)


def category_storage_key(raw: str) -> str:
    """String form of ``canonical_category_key`` for unique columns."""
    key = canonical_category_key(raw)
    return key.value if isinstance(key, CategoryKey) else key
