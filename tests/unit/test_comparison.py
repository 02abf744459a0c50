"""
Tests for best-value quote comparison.

Validates:
- Fewer than two candidates have no best value
- Weighted, normalised scoring across price, lead time and rating
- Tie-breaking by price, then by position
- Lead time parsing
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from sourcing_modules.quotes.comparison import (
    UNPARSABLE_LEAD_DAYS,
    best_value_quote_id,
    parse_lead_time_days,
)
from sourcing_modules.quotes.models import QuoteCandidate


def candidate(price, lead_time="5 days", rating=None):
    return QuoteCandidate(
        quote_id=uuid4(),
        price=Decimal(price),
        lead_time=lead_time,
        rating=Decimal(rating) if rating is not None else None,
    )


class TestParseLeadTime:

    @pytest.mark.parametrize("raw, days", [
        ("5 days", 5),
        ("1 day (auto)", 1),
        ("  12 business days", 12),
        (7, 7),
    ])
    def test_leading_integer(self, raw, days):
        assert parse_lead_time_days(raw) == days

    @pytest.mark.parametrize("raw", [None, "", "next week", "about 3 days", True])
    def test_unparsable(self, raw):
        assert parse_lead_time_days(raw) == UNPARSABLE_LEAD_DAYS


class TestBestValue:

    def test_needs_two_candidates(self):
        assert best_value_quote_id([]) is None
        assert best_value_quote_id([candidate("100")]) is None

    def test_cheaper_and_faster_wins(self):
        slow = candidate("120", "10 days")
        fast = candidate("100", "2 days")
        assert best_value_quote_id([slow, fast]) == fast.quote_id

    def test_price_outweighs_lead_time(self):
        cheap_slow = candidate("100", "10 days")
        pricey_fast = candidate("200", "1 day")
        assert best_value_quote_id([pricey_fast, cheap_slow]) == cheap_slow.quote_id

    def test_rating_breaks_equal_price_and_lead(self):
        low = candidate("100", "5 days", rating="2")
        high = candidate("100", "5 days", rating="5")
        assert best_value_quote_id([low, high]) == high.quote_id

    def test_unparsable_lead_time_ranks_last_on_that_dimension(self):
        unknown = candidate("100", "call us")
        known = candidate("100", "30 days")
        assert best_value_quote_id([unknown, known]) == known.quote_id

    def test_identical_candidates_keep_first(self):
        first = candidate("100")
        second = candidate("100")
        assert best_value_quote_id([first, second]) == first.quote_id
