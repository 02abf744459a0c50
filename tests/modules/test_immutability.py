"""
Tests for ORM-level immutability.

Order amounts and parties, order line snapshots, RFQ items, credit ledger
rows and settled quotes cannot change once written.
"""

from decimal import Decimal

import pytest

from sourcing_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from sourcing_kernel.exceptions import ImmutabilityViolationError
from sourcing_modules.credit.orm import CreditLimitAdjustmentModel
from sourcing_modules.orders.orm import OrderModel
from sourcing_modules.quotes.orm import QuoteModel
from sourcing_modules.rfq.orm import RFQModel


def _assert_blocked(session, entity_type=None):
    with pytest.raises(ImmutabilityViolationError) as exc_info:
        session.flush()
    if entity_type is not None:
        assert exc_info.value.entity_type == entity_type
    session.rollback()


class TestOrderImmutability:

    def test_amount_frozen(self, session, accepted_order):
        order = session.get(OrderModel, accepted_order.order_id)
        order.amount = Decimal("1.00")
        _assert_blocked(session, "Order")
        assert session.get(OrderModel, accepted_order.order_id).amount == Decimal("1150.00")

    def test_parties_frozen(self, session, accepted_order, other_supplier):
        order = session.get(OrderModel, accepted_order.order_id)
        order.supplier_id = other_supplier.id
        _assert_blocked(session, "Order")

    def test_fulfilment_fields_stay_mutable(self, session, accepted_order):
        order = session.get(OrderModel, accepted_order.order_id)
        order.carrier = "DHL"
        session.flush()
        session.commit()

    def test_delete_blocked(self, session, accepted_order):
        session.delete(session.get(OrderModel, accepted_order.order_id))
        _assert_blocked(session)

    def test_line_snapshot_frozen(self, session, accepted_order):
        order = session.get(OrderModel, accepted_order.order_id)
        order.lines[0].unit_price = Decimal("0.01")
        _assert_blocked(session, "OrderLine")


class TestQuoteImmutability:

    def test_accepted_quote_sealed(self, session, accepted_order):
        quote = session.get(QuoteModel, accepted_order.quote.id)
        quote.final_price = Decimal("1.00")
        _assert_blocked(session, "Quote")

    def test_accepted_quote_status_sealed(self, session, accepted_order):
        quote = session.get(QuoteModel, accepted_order.quote.id)
        quote.status = "SENT_TO_CLIENT"
        _assert_blocked(session, "Quote")

    def test_pending_quote_editable(self, session, quote_service, make_rfq, make_product, client_user, supplier_user, line):
        product = make_product(supplier_user)
        rfq = make_rfq(client_user, [(product, 1)])
        quote_id = quote_service.submit_supplier_quote(
            rfq.id, supplier_user.id, [line(product, "5", 1)],
        ).value.quote.id
        quote = session.get(QuoteModel, quote_id)
        quote.notes = "Revised packaging"
        session.flush()


class TestRfqItemImmutability:

    def test_item_quantity_frozen(self, session, make_rfq, make_product, client_user, supplier_user):
        rfq = make_rfq(client_user, [(make_product(supplier_user), 3)])
        item = session.get(RFQModel, rfq.id).items[0]
        item.quantity = 30
        _assert_blocked(session, "RFQItem")


class TestCreditLedgerImmutability:

    @pytest.fixture
    def ledger_row(self, credit_service, client_user, admin_actor, session):
        adjustment = credit_service.adjust_credit_limit(
            client_user.id, "INCREASE", "100", "Seasonal bump", admin_actor,
        ).value.adjustment
        return session.get(CreditLimitAdjustmentModel, adjustment.id)

    def test_update_blocked(self, session, ledger_row):
        ledger_row.new_limit = Decimal("999999")
        _assert_blocked(session, "CreditLimitAdjustment")

    def test_delete_blocked(self, session, ledger_row):
        session.delete(ledger_row)
        _assert_blocked(session, "CreditLimitAdjustment")


def test_listeners_can_be_lifted_for_repair(session, accepted_order):
    unregister_immutability_listeners()
    try:
        order = session.get(OrderModel, accepted_order.order_id)
        order.amount = Decimal("1100.00")
        session.flush()
        session.rollback()
    finally:
        register_immutability_listeners()

    order = session.get(OrderModel, accepted_order.order_id)
    order.amount = Decimal("1.00")
    _assert_blocked(session, "Order")
