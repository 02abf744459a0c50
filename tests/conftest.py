"""
Pytest fixtures for the sourcing kernel test suite.

Provides:
- A fresh database per test: in-memory SQLite by default, PostgreSQL when
  DATABASE_URL is set
- Deterministic clock, in-memory notification sink, fixed configuration
- Factories for users, products and RFQs
- Service fixtures wired to all of the above
- Captured structured logs

Factories commit what they create.  A service operation that fails rolls
the session back, and fixtures must survive that.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from sourcing_config import AutoQuoteConfig, MarketplaceConfig
from sourcing_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from sourcing_kernel.db.immutability import register_immutability_listeners
from sourcing_kernel.domain.actor import Actor
from sourcing_kernel.domain.clock import DeterministicClock
from sourcing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from sourcing_kernel.models.product import ProductAvailability, ProductModel
from sourcing_kernel.models.user import PaymentTerms, UserModel, UserRole
from sourcing_kernel.services.notification import InMemoryNotificationSink
from sourcing_modules.credit.service import CreditService
from sourcing_modules.margins.service import MarginService
from sourcing_modules.orders.service import OrderService
from sourcing_modules.quotes.service import QuoteService
from sourcing_modules.rfq.service import RFQService

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture sourcing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, quote_service):
            quote_service.reject_quote(quote_id)
            logs = captured_logs()
            assert any(r["message"] == "quote_rejected" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("sourcing_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine():
    """Engine with every table created.  Dropped again after the test."""
    engine = init_engine_from_url(get_database_url(), echo=False)
    create_tables()
    register_immutability_listeners()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine):
    s = get_session()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def session_factory(db_engine):
    """Open extra sessions on the same database (concurrency tests)."""
    opened = []

    def _open():
        s = get_session()
        opened.append(s)
        return s

    yield _open

    for s in opened:
        s.rollback()
        s.close()


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture
def notifier():
    return InMemoryNotificationSink()


@pytest.fixture
def config():
    """Defaults matching defaults.yaml, built in code."""
    return MarketplaceConfig(
        default_margin_percent=Decimal("15"),
        default_category="Office",
        payout_holding_days=7,
        credit_history_limit=30,
        enforce_credit_on_acceptance=True,
        order_initial_status="PENDING_ADMIN_CONFIRMATION",
        auto_quote=AutoQuoteConfig(
            enabled=True,
            delay_minutes=30,
            lead_time_days=3,
            include_limited_stock=False,
        ),
    )


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_user(session):
    def _make(
        role: UserRole = UserRole.CLIENT,
        name: str | None = None,
        company_name: str | None = None,
        credit_limit: Decimal = Decimal("0"),
        client_margin: Decimal | None = None,
        payment_terms: PaymentTerms = PaymentTerms.NET_30,
    ) -> UserModel:
        user_id = uuid4()
        user = UserModel(
            id=user_id,
            role=role.value,
            name=name or f"{role.value.lower()}-{user_id.hex[:8]}",
            email=f"{user_id.hex}@example.test",
            company_name=company_name,
            credit_limit=credit_limit,
            client_margin=client_margin,
            payment_terms=payment_terms.value,
        )
        session.add(user)
        session.commit()
        return user

    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user(UserRole.ADMIN, name="Admin")


@pytest.fixture
def client_user(make_user):
    return make_user(
        UserRole.CLIENT,
        name="Dana Client",
        company_name="Acme Offices",
        credit_limit=Decimal("100000"),
    )


@pytest.fixture
def supplier_user(make_user):
    return make_user(UserRole.SUPPLIER, name="Paper Co")


@pytest.fixture
def other_supplier(make_user):
    return make_user(UserRole.SUPPLIER, name="Desk Co")


@pytest.fixture
def admin_actor(admin_user):
    return Actor.admin(admin_user.id)


@pytest.fixture
def client_actor(client_user):
    return Actor.client(client_user.id)


@pytest.fixture
def make_product(session):
    def _make(
        supplier: UserModel,
        supplier_price: Decimal = Decimal("10.00"),
        category: str | None = "Office",
        availability: ProductAvailability = ProductAvailability.IN_STOCK,
        stock: int | None = None,
        lead_time_days: int | None = None,
        name: str | None = None,
    ) -> ProductModel:
        product = ProductModel(
            id=uuid4(),
            supplier_id=supplier.id,
            name=name or f"product-{uuid4().hex[:6]}",
            category=category,
            supplier_price=supplier_price,
            availability=availability.value,
            stock=stock,
            lead_time_days=lead_time_days,
        )
        session.add(product)
        session.commit()
        return product

    return _make


@pytest.fixture
def make_rfq(rfq_service):
    """Create an RFQ through the service: ``make_rfq(client, [(product, qty), ...])``."""

    def _make(client: UserModel, items, delivery_location: str | None = "Dock 4", expires_at=None):
        result = rfq_service.create_rfq(
            client.id,
            [{"product_id": product.id if product is not None else None, "quantity": qty}
             for product, qty in items],
            delivery_location=delivery_location,
            expires_at=expires_at,
        )
        assert result.is_success, result.error
        return result.value

    return _make


@pytest.fixture
def line():
    """A quoted line dict: ``line(product, "25.00", 4)``."""

    def _line(product, unit_price, quantity, lead_time="5 days", is_alternative=False):
        return {
            "product_id": product.id if product is not None else None,
            "unit_price": unit_price,
            "quantity": quantity,
            "lead_time": lead_time,
            "is_alternative": is_alternative,
        }

    return _line


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def rfq_service(session, deterministic_clock, notifier):
    return RFQService(session, clock=deterministic_clock, notifier=notifier)


@pytest.fixture
def quote_service(session, deterministic_clock, config, notifier):
    return QuoteService(session, clock=deterministic_clock, config=config, notifier=notifier)


@pytest.fixture
def order_service(session, deterministic_clock, config, notifier):
    return OrderService(session, clock=deterministic_clock, config=config, notifier=notifier)


@pytest.fixture
def credit_service(session, deterministic_clock, config, notifier):
    return CreditService(session, clock=deterministic_clock, config=config, notifier=notifier)


@pytest.fixture
def margin_service(session, deterministic_clock, config, notifier):
    return MarginService(session, clock=deterministic_clock, config=config, notifier=notifier)


# =============================================================================
# Scenarios
# =============================================================================


@pytest.fixture
def sent_quote(
    make_product, make_rfq, quote_service, client_user, supplier_user, line,
):
    """A 1000.00 quote at 15% margin, sent to the client (final 1150.00)."""
    product = make_product(supplier_user, supplier_price=Decimal("100.00"))
    rfq = make_rfq(client_user, [(product, 10)])
    submitted = quote_service.submit_supplier_quote(
        rfq.id, supplier_user.id, [line(product, "100.00", 10)],
    )
    assert submitted.is_success, submitted.error
    sent = quote_service.apply_margin_and_send(submitted.value.quote.id, "15")
    assert sent.is_success, sent.error
    return sent.value


@pytest.fixture
def accepted_order(quote_service, sent_quote, client_actor):
    """The order created by accepting ``sent_quote``."""
    accepted = quote_service.accept_quote(sent_quote.id, client_actor)
    assert accepted.is_success, accepted.error
    return accepted.value
