"""
Tests for QuoteService.generate_auto_quotes.

Validates:
- Only OPEN, unclaimed, unexpired RFQs older than the delay are processed
- Expired RFQs are closed and counted; the batch limit caps a run
- Each RFQ is claimed once, whether or not a quote came out of it
- Generated quotes are sent with the weighted margin
- A supplier's custom submission overrides its open auto quote
"""

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from sourcing_kernel.domain.results import OperationStatus
from sourcing_kernel.models.product import ProductAvailability
from sourcing_modules.quotes.models import QuoteStatus, QuoteType
from sourcing_modules.quotes.orm import QuoteModel
from sourcing_modules.quotes.service import QuoteService
from sourcing_modules.rfq.models import RFQStatus
from sourcing_modules.rfq.selector import RFQSelector


@pytest.fixture
def catalog(make_product, supplier_user):
    return {
        "paper": make_product(supplier_user, supplier_price=Decimal("10.00"), lead_time_days=2),
        "toner": make_product(
            supplier_user, supplier_price=Decimal("30.00"), category="IT Supplies", lead_time_days=5,
        ),
    }


def _run(quote_service, deterministic_clock, minutes=31):
    deterministic_clock.advance(minutes * 60)
    result = quote_service.generate_auto_quotes()
    assert result.is_success, result.error
    return result.value


class TestGenerateAutoQuotes:

    def test_generates_and_sends(self, quote_service, deterministic_clock, make_rfq, client_user, catalog, session, notifier):
        rfq = make_rfq(client_user, [(catalog["paper"], 4), (catalog["toner"], 2)])

        summary = _run(quote_service, deterministic_clock)

        assert summary.enabled
        assert summary.eligible_rfqs == 1
        assert summary.generated_quotes == 1
        assert summary.generated_quote_items == 2
        quote = session.get(QuoteModel, summary.quote_ids[0]).to_dto()
        assert quote.quote_type == QuoteType.AUTO
        assert quote.status == QuoteStatus.SENT_TO_CLIENT
        assert quote.supplier_price == Decimal("100.00")
        # no category settings yet, so every item takes the 15% global
        assert quote.margin_percent == Decimal("15.00")
        assert quote.final_price == Decimal("115.00")
        assert quote.lead_time == "5 days (auto)"
        assert [line.lead_time for line in quote.lines] == ["2 days (auto)", "5 days (auto)"]

        stored = RFQSelector(session).get(rfq.id)
        assert stored.auto_quote_triggered
        assert stored.status == RFQStatus.QUOTED
        assert [n.recipient_id for n in notifier.of_type("quote_sent")] == [client_user.id]

    def test_weighted_margin_from_category_settings(
        self, quote_service, margin_service, deterministic_clock, make_rfq, client_user, catalog, session,
    ):
        margin_service.set_category_margin("IT", "35")
        make_rfq(client_user, [(catalog["paper"], 4), (catalog["toner"], 2)])

        summary = _run(quote_service, deterministic_clock)

        quote = session.get(QuoteModel, summary.quote_ids[0])
        # (15 * 40 + 35 * 60) / 100
        assert quote.margin_percent == Decimal("27.00")
        assert quote.final_price == Decimal("127.00")

    def test_too_recent_rfq_is_left_alone(self, quote_service, deterministic_clock, make_rfq, client_user, catalog, session):
        rfq = make_rfq(client_user, [(catalog["paper"], 1)])

        summary = _run(quote_service, deterministic_clock, minutes=29)

        assert summary.fetched_rfqs == 0
        assert not RFQSelector(session).get(rfq.id).auto_quote_triggered

    def test_exact_delay_is_eligible(self, quote_service, deterministic_clock, make_rfq, client_user, catalog):
        make_rfq(client_user, [(catalog["paper"], 1)])
        assert _run(quote_service, deterministic_clock, minutes=30).eligible_rfqs == 1

    def test_rfq_claimed_once(self, quote_service, deterministic_clock, make_rfq, client_user, catalog):
        make_rfq(client_user, [(catalog["paper"], 1)])
        assert _run(quote_service, deterministic_clock).generated_quotes == 1
        second = _run(quote_service, deterministic_clock)
        assert second.fetched_rfqs == 0
        assert second.generated_quotes == 0

    def test_claimed_even_when_nothing_available(
        self, quote_service, deterministic_clock, make_rfq, make_product, client_user, supplier_user, session,
    ):
        sold_out = make_product(supplier_user, availability=ProductAvailability.OUT_OF_STOCK)
        rfq = make_rfq(client_user, [(sold_out, 1)])

        summary = _run(quote_service, deterministic_clock)

        assert summary.generated_quotes == 0
        assert summary.skipped_unavailable_items == 1
        stored = RFQSelector(session).get(rfq.id)
        assert stored.auto_quote_triggered
        assert stored.status == RFQStatus.OPEN

    def test_limited_stock_needs_opt_in(
        self, session, deterministic_clock, config, notifier, make_rfq, make_product, client_user, supplier_user,
    ):
        limited = make_product(supplier_user, stock=1)
        make_rfq(client_user, [(limited, 5)])
        service = QuoteService(
            session, clock=deterministic_clock, notifier=notifier,
            config=replace(config, auto_quote=replace(config.auto_quote, include_limited_stock=True)),
        )
        assert _run(service, deterministic_clock).generated_quotes == 1

    def test_supplier_with_custom_quote_is_skipped(
        self, quote_service, deterministic_clock, make_rfq, client_user, supplier_user, catalog, line,
    ):
        rfq = make_rfq(client_user, [(catalog["paper"], 1)])
        quote_service.submit_supplier_quote(rfq.id, supplier_user.id, [line(catalog["paper"], "9.00", 1)])

        summary = _run(quote_service, deterministic_clock)

        assert summary.generated_quotes == 0
        assert summary.skipped_existing_quote_suppliers == 1

    def test_non_open_rfq_ignored(self, quote_service, rfq_service, deterministic_clock, make_rfq, client_user, catalog, admin_actor):
        rfq = make_rfq(client_user, [(catalog["paper"], 1)])
        rfq_service.cancel_rfq(rfq.id, admin_actor)
        assert _run(quote_service, deterministic_clock).fetched_rfqs == 0

    def test_disabled(self, session, deterministic_clock, config, notifier, make_rfq, client_user, catalog, captured_logs):
        make_rfq(client_user, [(catalog["paper"], 1)])
        service = QuoteService(
            session, clock=deterministic_clock, notifier=notifier,
            config=replace(config, auto_quote=replace(config.auto_quote, enabled=False)),
        )

        summary = _run(service, deterministic_clock)

        assert not summary.enabled
        assert summary.generated_quotes == 0
        assert any(r["message"] == "auto_quote_disabled" for r in captured_logs())

    def test_explicit_run_time(self, quote_service, deterministic_clock, make_rfq, client_user, catalog):
        make_rfq(client_user, [(catalog["paper"], 1)])
        result = quote_service.generate_auto_quotes(now=deterministic_clock.now() + timedelta(hours=1))
        assert result.value.generated_quotes == 1


class TestExpiryAndBatchLimit:

    def test_expired_rfq_closed_and_not_quoted(
        self, quote_service, deterministic_clock, make_rfq, client_user, catalog, session,
    ):
        rfq = make_rfq(
            client_user, [(catalog["paper"], 1)],
            expires_at=deterministic_clock.now() + timedelta(minutes=10),
        )

        summary = _run(quote_service, deterministic_clock)

        assert summary.closed_expired_rfqs == 1
        assert summary.fetched_rfqs == 0
        assert summary.generated_quotes == 0
        stored = RFQSelector(session).get(rfq.id)
        assert stored.status == RFQStatus.CLOSED
        assert not stored.auto_quote_triggered
        assert stored.is_expired(deterministic_clock.now())

    def test_unexpired_rfq_still_quoted(self, quote_service, deterministic_clock, make_rfq, client_user, catalog):
        make_rfq(
            client_user, [(catalog["paper"], 1)],
            expires_at=deterministic_clock.now() + timedelta(hours=2),
        )

        summary = _run(quote_service, deterministic_clock)

        assert summary.closed_expired_rfqs == 0
        assert summary.generated_quotes == 1

    def test_expiry_instant_counts_as_expired(
        self, quote_service, deterministic_clock, make_rfq, client_user, catalog, session,
    ):
        rfq = make_rfq(
            client_user, [(catalog["paper"], 1)],
            expires_at=deterministic_clock.now() + timedelta(minutes=31),
        )
        assert not rfq.is_expired(deterministic_clock.now())
        assert _run(quote_service, deterministic_clock).closed_expired_rfqs == 1
        assert RFQSelector(session).get(rfq.id).status == RFQStatus.CLOSED

    def test_expired_rfq_skipped_without_closing(
        self, quote_service, deterministic_clock, make_rfq, client_user, catalog, session,
    ):
        rfq = make_rfq(
            client_user, [(catalog["paper"], 1)],
            expires_at=deterministic_clock.now() + timedelta(minutes=10),
        )
        deterministic_clock.advance(31 * 60)

        summary = quote_service.generate_auto_quotes(close_expired=False).value

        assert summary.closed_expired_rfqs == 0
        assert summary.fetched_rfqs == 0
        assert RFQSelector(session).get(rfq.id).status == RFQStatus.OPEN

    def test_disabled_run_still_closes_expired(
        self, session, deterministic_clock, config, notifier, make_rfq, client_user, catalog,
    ):
        rfq = make_rfq(
            client_user, [(catalog["paper"], 1)],
            expires_at=deterministic_clock.now() + timedelta(minutes=10),
        )
        service = QuoteService(
            session, clock=deterministic_clock, notifier=notifier,
            config=replace(config, auto_quote=replace(config.auto_quote, enabled=False)),
        )

        summary = _run(service, deterministic_clock)

        assert not summary.enabled
        assert summary.closed_expired_rfqs == 1
        assert RFQSelector(session).get(rfq.id).status == RFQStatus.CLOSED

    def test_limit_takes_oldest_first(self, quote_service, deterministic_clock, make_rfq, client_user, catalog, session):
        first = make_rfq(client_user, [(catalog["paper"], 1)])
        deterministic_clock.advance(60)
        second = make_rfq(client_user, [(catalog["paper"], 1)])
        deterministic_clock.advance(31 * 60)

        summary = quote_service.generate_auto_quotes(limit=1).value

        assert summary.fetched_rfqs == 1
        assert RFQSelector(session).get(first.id).auto_quote_triggered
        assert not RFQSelector(session).get(second.id).auto_quote_triggered

        assert quote_service.generate_auto_quotes(limit=1).value.fetched_rfqs == 1
        assert RFQSelector(session).get(second.id).auto_quote_triggered

    def test_limit_from_config(
        self, session, deterministic_clock, config, notifier, make_rfq, client_user, catalog,
    ):
        for _ in range(3):
            make_rfq(client_user, [(catalog["paper"], 1)])
        service = QuoteService(
            session, clock=deterministic_clock, notifier=notifier,
            config=replace(config, auto_quote=replace(config.auto_quote, batch_limit=2)),
        )
        assert _run(service, deterministic_clock).fetched_rfqs == 2

    @pytest.mark.parametrize("limit", [0, -1, 501, True, "10"])
    def test_bad_limit_rejected(self, quote_service, deterministic_clock, make_rfq, client_user, catalog, session, limit):
        rfq = make_rfq(client_user, [(catalog["paper"], 1)])
        deterministic_clock.advance(31 * 60)

        result = quote_service.generate_auto_quotes(limit=limit)

        assert result.status == OperationStatus.VALIDATION_FAILED
        assert result.error.field == "limit"
        assert not RFQSelector(session).get(rfq.id).auto_quote_triggered


class TestCustomOverridesAutoQuote:

    def test_override_resets_to_pending_custom(
        self, quote_service, deterministic_clock, make_rfq, client_user, supplier_user, catalog, line, session,
    ):
        rfq = make_rfq(client_user, [(catalog["paper"], 4)])
        auto_id = _run(quote_service, deterministic_clock).quote_ids[0]

        result = quote_service.submit_supplier_quote(
            rfq.id, supplier_user.id, [line(catalog["paper"], "8.50", 4, lead_time="1 day")],
        )

        assert result.is_success, result.error
        submission = result.value
        assert submission.replaced_auto_quote
        quote = submission.quote
        assert quote.id == auto_id
        assert quote.quote_type == QuoteType.CUSTOM
        assert quote.status == QuoteStatus.PENDING_ADMIN
        assert quote.supplier_price == Decimal("34.00")
        assert quote.margin_percent == Decimal("0")
        assert quote.final_price == Decimal("34.00")
        assert [(line.unit_price, line.lead_time) for line in quote.lines] == [(Decimal("8.50"), "1 day")]
        assert session.execute(
            select(func.count()).select_from(QuoteModel).where(QuoteModel.rfq_id == rfq.id)
        ).scalar_one() == 1

    def test_accepted_auto_quote_is_not_overridden(
        self, quote_service, deterministic_clock, make_rfq, client_user, client_actor, supplier_user, catalog, line,
    ):
        rfq = make_rfq(client_user, [(catalog["paper"], 4)])
        auto_id = _run(quote_service, deterministic_clock).quote_ids[0]
        assert quote_service.accept_quote(auto_id, client_actor).is_success

        result = quote_service.submit_supplier_quote(
            rfq.id, supplier_user.id, [line(catalog["paper"], "8.50", 4)],
        )
        assert result.status == OperationStatus.STATE_CONFLICT
