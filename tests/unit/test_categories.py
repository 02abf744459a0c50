"""
Tests for category canonicalisation.

Validates:
- Known aliases collapse onto one CategoryKey
- Unknown strings fall back to the normalised form
- The storage key used by the unique constraint
"""

import pytest

from sourcing_modules.margins.categories import (
    CategoryKey,
    canonical_category_key,
    category_storage_key,
    normalize_category,
)


class TestCanonicalCategoryKey:

    @pytest.mark.parametrize("raw", ["IT Supplies", "IT", "it_supplies", "it-supplies", " it "])
    def test_it_aliases(self, raw):
        assert canonical_category_key(raw) is CategoryKey.IT_SUPPLIES

    @pytest.mark.parametrize("raw", ["Office", "Office Supplies", "office_supplies", "OFFICE"])
    def test_office_aliases(self, raw):
        assert canonical_category_key(raw) is CategoryKey.OFFICE

    def test_other_marketplace_categories(self):
        assert canonical_category_key("Breakroom Supplies") is CategoryKey.BREAKROOM
        assert canonical_category_key("Janitorial") is CategoryKey.JANITORIAL
        assert canonical_category_key("maintenance") is CategoryKey.MAINTENANCE

    def test_unknown_category_falls_back_to_normalised_string(self):
        assert canonical_category_key("Safety Gear") == "safetygear"
        assert canonical_category_key("safety-gear") == canonical_category_key("SAFETY_GEAR")

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Office.", CategoryKey.OFFICE),
            ("Office/Supplies", CategoryKey.OFFICE),
            ("I.T.", CategoryKey.IT_SUPPLIES),
            ("IT & Supplies", CategoryKey.IT_SUPPLIES),
            ("(Janitorial)", CategoryKey.JANITORIAL),
        ],
    )
    def test_punctuation_is_ignored(self, raw, expected):
        assert canonical_category_key(raw) is expected

    def test_unknown_category_ignores_punctuation(self):
        assert canonical_category_key("Safety, Gear!") == canonical_category_key("safety gear")

    def test_unknown_does_not_collide_with_known(self):
        assert canonical_category_key("Furniture") != CategoryKey.OFFICE


class TestStorageKey:

    def test_known_category_uses_enum_value(self):
        assert category_storage_key("IT Supplies") == "it_supplies"

    def test_unknown_category_uses_normalised_string(self):
        assert category_storage_key("Safety Gear") == "safetygear"

    def test_normalize_strips_separators(self):
        assert normalize_category("  Break_room - Supplies ") == "breakroomsupplies"

    def test_normalize_keeps_only_letters_and_digits(self):
        assert normalize_category("A4 Paper (80g/m²).") == "a4paper80gm"
        assert normalize_category("*") == ""
