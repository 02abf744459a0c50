"""
Best-value comparison (``sourcing_modules.quotes.comparison``).

Ranks competing quotes on one RFQ for the client.  Each dimension is
min-max normalised across the candidates, then weighted:

    score = 0.60 * price + 0.25 * lead_days + 0.15 * (1 - rating)

The lowest score wins; equal scores go to the lower price, then to the
earlier candidate.  Fewer than two candidates have no best value.
"""

import re
from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sourcing_modules.quotes.models import QuoteCandidate

PRICE_WEIGHT = Decimal("0.6")
LEAD_TIME_WEIGHT = Decimal("0.25")
RATING_WEIGHT = Decimal("0.15")

# Lead times that cannot be parsed rank after every parsable one
UNPARSABLE_LEAD_DAYS = 2**53 - 1

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_lead_time_days(lead_time: str | int | None) -> int:
    """Days from the leading integer of a lead-time label ("5 days" -> 5)."""
    if isinstance(lead_time, bool):
        return UNPARSABLE_LEAD_DAYS
    if isinstance(lead_time, int):
        return lead_time
    if not lead_time:
        return UNPARSABLE_LEAD_DAYS
    match = _LEADING_INT.match(lead_time)
    if match is None:
        return UNPARSABLE_LEAD_DAYS
    return int(match.group(1))


def _normalize(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    if high == low:
        return Decimal("0")
    return (value - low) / (high - low)


def best_value_quote_id(candidates: Sequence[QuoteCandidate]) -> UUID | None:
    if len(candidates) < 2:
        return None

    prices = [c.price for c in candidates]
    leads = [Decimal(parse_lead_time_days(c.lead_time)) for c in candidates]
    ratings = [c.rating if c.rating is not None else Decimal("0") for c in candidates]

    scored = []
    for index, candidate in enumerate(candidates):
        score = (
            PRICE_WEIGHT * _normalize(prices[index], min(prices), max(prices))
            + LEAD_TIME_WEIGHT * _normalize(leads[index], min(leads), max(leads))
            + RATING_WEIGHT * (1 - _normalize(ratings[index], min(ratings), max(ratings)))
        )
        scored.append((score, candidate.price, index, candidate.quote_id))

    scored.sort()
    return scored[0][3]
