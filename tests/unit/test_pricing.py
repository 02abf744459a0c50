"""
Tests for pricing arithmetic and quote line validation.

Validates:
- apply_margin rounding and idempotent reapplication
- weighted_margin and its zero-weight fallback
- Quote line validation: quoted vs. unquoted lines, bad numbers
- supplier_price = quoted line totals + shipping + tax
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sourcing_kernel.db.types import require_amount, require_margin_percent, round_money
from sourcing_kernel.domain.pricing import apply_margin, weighted_margin
from sourcing_kernel.exceptions import InvalidAmountError, InvalidMarginError, InvalidQuoteLineError
from sourcing_modules.quotes.models import QuoteLineInput
from sourcing_modules.quotes.pricing import (
    require_charges,
    summary_lead_time,
    supplier_price,
    validate_line_items,
)

money = st.decimals(min_value=0, max_value=10_000_000, places=2, allow_nan=False, allow_infinity=False)
percents = st.decimals(min_value=0, max_value=100, places=2, allow_nan=False, allow_infinity=False)


class TestApplyMargin:

    def test_fifteen_percent_on_one_thousand(self):
        assert apply_margin(Decimal("1000.00"), Decimal("15")) == Decimal("1150.00")

    def test_rounds_half_up_to_cents(self):
        assert apply_margin(Decimal("0.10"), Decimal("5")) == Decimal("0.11")

    def test_zero_margin_is_supplier_price(self):
        assert apply_margin(Decimal("99.99"), Decimal("0")) == Decimal("99.99")

    @given(price=money, margin=percents)
    def test_reapplying_same_margin_is_stable(self, price, margin):
        first = apply_margin(price, margin)
        assert apply_margin(price, margin) == first
        assert first == round_money(price * (1 + margin / 100))
        assert first >= round_money(price)


class TestWeightedMargin:

    def test_value_weighted(self):
        margin = weighted_margin(
            [(Decimal("10"), Decimal("100")), (Decimal("30"), Decimal("300"))],
            fallback=Decimal("15"),
        )
        assert margin == Decimal("25.00")

    def test_zero_weight_uses_fallback(self):
        assert weighted_margin([], fallback=Decimal("15")) == Decimal("15")
        assert weighted_margin([(Decimal("40"), Decimal("0"))], fallback=Decimal("15")) == Decimal("15")


class TestRequireHelpers:

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-1", "100.01", None, "abc", True])
    def test_invalid_margin(self, value):
        with pytest.raises(InvalidMarginError):
            require_margin_percent(value)

    def test_margin_is_rounded(self):
        assert require_margin_percent("12.345") == Decimal("12.35")
        assert require_margin_percent(0) == Decimal("0.00")
        assert require_margin_percent(100) == Decimal("100.00")

    def test_amount_rules(self):
        assert require_amount("0", "amount") == Decimal("0")
        with pytest.raises(InvalidAmountError):
            require_amount("0", "amount", allow_zero=False)
        with pytest.raises(InvalidAmountError):
            require_amount("-5", "amount")
        with pytest.raises(InvalidAmountError):
            require_amount(float("inf"), "amount")


class TestValidateLineItems:

    def test_numbers_lines_in_order(self):
        lines = validate_line_items([
            {"product_id": uuid4(), "unit_price": "10", "quantity": 2, "lead_time": "3 days"},
            QuoteLineInput(product_id=uuid4(), unit_price=Decimal("5"), quantity=1, lead_time="1 day"),
        ])
        assert [line.line_number for line in lines] == [1, 2]
        assert all(line.is_quoted for line in lines)

    def test_line_without_lead_time_is_unquoted(self):
        lines = validate_line_items([
            {"product_id": None, "unit_price": "10", "quantity": 2, "lead_time": "2 days"},
            {"product_id": None, "unit_price": "10", "quantity": 2, "lead_time": "   "},
        ])
        assert [line.is_quoted for line in lines] == [True, False]
        assert lines[1].lead_time is None

    def test_zero_price_line_is_unquoted(self):
        lines = validate_line_items([
            {"product_id": None, "unit_price": "10", "quantity": 1, "lead_time": "2 days"},
            {"product_id": None, "unit_price": "0", "quantity": 0, "lead_time": "2 days"},
        ])
        assert lines[1].is_quoted is False
        assert lines[1].line_total == Decimal("0")

    def test_empty_is_rejected(self):
        with pytest.raises(InvalidQuoteLineError):
            validate_line_items([])

    def test_nothing_quoted_is_rejected(self):
        with pytest.raises(InvalidQuoteLineError):
            validate_line_items([{"product_id": None, "unit_price": "0", "quantity": 1, "lead_time": "1 day"}])

    @pytest.mark.parametrize(
        "price, quantity",
        [("NaN", 1), ("Infinity", 1), ("-1", 1), ("abc", 1), ("10", "NaN"), ("10", 0), ("10", -2)],
    )
    def test_bad_numbers_are_rejected(self, price, quantity):
        with pytest.raises(InvalidQuoteLineError) as exc_info:
            validate_line_items([
                {"product_id": None, "unit_price": price, "quantity": quantity, "lead_time": "1 day"},
            ])
        assert exc_info.value.line_index == 0

    def test_unsupported_item_type(self):
        with pytest.raises(InvalidQuoteLineError):
            validate_line_items(["not a line"])


class TestSupplierPrice:

    def test_sum_of_quoted_lines_plus_charges(self):
        lines = validate_line_items([
            {"product_id": None, "unit_price": "12.50", "quantity": 4, "lead_time": "2 days"},
            {"product_id": None, "unit_price": "3.00", "quantity": 10, "lead_time": "5 days"},
            {"product_id": None, "unit_price": "99.00", "quantity": 1, "lead_time": None},
        ])
        shipping, tax = require_charges("15", "7.5")
        assert supplier_price(lines, shipping, tax) == Decimal("102.50")

    def test_negative_charges_rejected(self):
        with pytest.raises(InvalidAmountError):
            require_charges("-1", "0")
        with pytest.raises(InvalidAmountError):
            require_charges("0", "NaN")

    def test_summary_lead_time_is_slowest_quoted_line(self):
        lines = validate_line_items([
            {"product_id": None, "unit_price": "1", "quantity": 1, "lead_time": "2 days"},
            {"product_id": None, "unit_price": "1", "quantity": 1, "lead_time": "10 days"},
            {"product_id": None, "unit_price": "0", "quantity": 1, "lead_time": "30 days"},
        ])
        assert summary_lead_time(lines) == "10 days"
