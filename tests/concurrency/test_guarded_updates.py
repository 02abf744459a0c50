"""
Single-writer guarantees.

Every lifecycle write is a compare-and-swap on the value the writer read.
Two writers that read the same state cannot both win: the loser gets a
ConcurrentModificationError (or, at the service boundary, a STATE_CONFLICT
result) and nothing it did is committed.

The SQLite tests interleave two sessions by hand.  The PostgreSQL test
races real threads and runs only when DATABASE_URL points at PostgreSQL.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from sourcing_kernel.db.engine import get_session, is_postgres
from sourcing_kernel.db.guards import compare_and_swap, lock_for_update
from sourcing_kernel.domain.results import OperationStatus
from sourcing_kernel.exceptions import ConcurrentModificationError
from sourcing_modules.orders.orm import OrderModel
from sourcing_modules.quotes.orm import QuoteModel
from sourcing_modules.quotes.service import QuoteService


class TestCompareAndSwap:

    def test_stale_writer_loses(self, session_factory, sent_quote):
        first, second = session_factory(), session_factory()
        assert lock_for_update(first, QuoteModel, sent_quote.id).status == "SENT_TO_CLIENT"
        assert lock_for_update(second, QuoteModel, sent_quote.id).status == "SENT_TO_CLIENT"

        compare_and_swap(first, QuoteModel, sent_quote.id, "status", "SENT_TO_CLIENT", {"status": "REJECTED"})
        first.commit()

        with pytest.raises(ConcurrentModificationError) as exc_info:
            compare_and_swap(
                second, QuoteModel, sent_quote.id, "status", "SENT_TO_CLIENT", {"status": "ACCEPTED"},
            )
        assert exc_info.value.code == "CONCURRENT_MODIFICATION"
        second.rollback()
        assert session_factory().get(QuoteModel, sent_quote.id).status == "REJECTED"

    def test_returns_refreshed_instance(self, session, sent_quote):
        updated = compare_and_swap(
            session, QuoteModel, sent_quote.id, "status", "SENT_TO_CLIENT", {"status": "REJECTED"},
        )
        assert updated.status == "REJECTED"

    def test_missing_row(self, session):
        with pytest.raises(ConcurrentModificationError):
            compare_and_swap(session, QuoteModel, uuid4(), "status", "SENT_TO_CLIENT", {"status": "REJECTED"})


class TestDoubleAccept:

    def test_second_acceptance_fails_cleanly(
        self, session_factory, deterministic_clock, config, notifier, sent_quote, client_actor,
    ):
        first = QuoteService(session_factory(), clock=deterministic_clock, config=config, notifier=notifier)
        second = QuoteService(session_factory(), clock=deterministic_clock, config=config, notifier=notifier)

        winner = first.accept_quote(sent_quote.id, client_actor)
        loser = second.accept_quote(sent_quote.id, client_actor)

        assert winner.is_success
        assert loser.status == OperationStatus.STATE_CONFLICT
        check = session_factory()
        orders = check.execute(
            select(func.count()).select_from(OrderModel).where(OrderModel.quote_id == sent_quote.id)
        ).scalar_one()
        assert orders == 1
        assert len(notifier.of_type("quote_accepted")) == 2


@pytest.mark.postgres
def test_racing_acceptances_on_postgres(db_engine, deterministic_clock, config, sent_quote, client_actor):
    if not is_postgres():
        pytest.skip("needs PostgreSQL (set DATABASE_URL)")

    barrier = Barrier(4)

    def accept():
        s = get_session()
        try:
            barrier.wait()
            return QuoteService(s, clock=deterministic_clock, config=config).accept_quote(
                sent_quote.id, client_actor,
            )
        finally:
            s.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: accept(), range(4)))

    assert sum(1 for r in results if r.is_success) == 1
    assert all(r.status == OperationStatus.STATE_CONFLICT for r in results if not r.is_success)
