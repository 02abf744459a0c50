"""
Margin Service (``sourcing_modules.margins.service``).

Responsibility
--------------
Write paths for margin settings (category, global, client) and the
load-then-resolve path that feeds ``resolve_margin`` for a stored quote.

Invariants enforced
-------------------
* Every percent is validated (finite, within [0, 100]) and rounded to two
  places before anything is written.  Invalid input writes nothing.
* One row per canonical category key; spellings of one category share it.
* The global default lives in two places that always agree: the
  NULL-category margin row and ``SystemConfig.default_margin_percent``.
* Writes are last-write-wins.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from sourcing_config import MarketplaceConfig, get_active_config
from sourcing_kernel.db.types import require_margin_percent
from sourcing_kernel.domain.clock import Clock
from sourcing_kernel.domain.results import OperationResult
from sourcing_kernel.exceptions import EntityNotFoundError, ValidationError
from sourcing_kernel.logging_config import LogContext, get_logger
from sourcing_kernel.models.user import UserModel
from sourcing_kernel.services.base import BaseService
from sourcing_kernel.services.notification import NotificationSink
from sourcing_modules.margins.categories import category_storage_key
from sourcing_modules.margins.models import ClientMargin, MarginSetting, ResolvedMargin
from sourcing_modules.margins.orm import (
    GLOBAL_CATEGORY_KEY,
    SYSTEM_CONFIG_KEY,
    MarginSettingModel,
    SystemConfigModel,
)
from sourcing_modules.margins.resolver import resolve_margin
from sourcing_modules.margins.selector import MarginSelector
from sourcing_modules.quotes.orm import QuoteModel
from sourcing_modules.rfq.orm import RFQModel
from sourcing_modules.rfq.selector import RFQSelector

logger = get_logger("modules.margins.service")


def ensure_system_config(session: Session, config: MarketplaceConfig) -> SystemConfigModel:
    """
    Return the SystemConfig row, seeding it from ``config`` on first use.

    The global margin row is seeded alongside it when missing.  Runs in
    the caller's transaction.
    """
    selector = MarginSelector(session)
    row = selector.system_config()
    if row is not None:
        return row

    row = SystemConfigModel(
        id=uuid4(),
        singleton_key=SYSTEM_CONFIG_KEY,
        default_margin_percent=config.default_margin_percent,
        auto_quote_enabled=config.auto_quote.enabled,
        auto_quote_delay_minutes=config.auto_quote.delay_minutes,
        auto_quote_lead_time_days=config.auto_quote.lead_time_days,
        auto_quote_include_limited_stock=config.auto_quote.include_limited_stock,
    )
    session.add(row)
    if _global_row(session) is None:
        session.add(MarginSettingModel(
            id=uuid4(),
            category=None,
            category_key=GLOBAL_CATEGORY_KEY,
            margin_percent=config.default_margin_percent,
        ))
    session.flush()
    logger.info(
        "system_config_seeded",
        extra={
            "default_margin_percent": str(config.default_margin_percent),
            "config_checksum": config.checksum,
        },
    )
    return row


def _global_row(session: Session) -> MarginSettingModel | None:
    return session.execute(
        select(MarginSettingModel).where(MarginSettingModel.category.is_(None))
    ).scalar_one_or_none()


class MarginService(BaseService):
    """Margin settings and quote margin resolution."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: MarketplaceConfig | None = None,
        notifier: NotificationSink | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock=clock, notifier=notifier, auto_commit=auto_commit)
        self._config = config or get_active_config()
        self._selector = MarginSelector(session)

    def set_category_margin(
        self,
        category: str,
        margin_percent: Any,
        actor_id: UUID | None = None,
    ) -> OperationResult[MarginSetting]:
        """Create or overwrite the margin for one category."""

        def body() -> MarginSetting:
            value = require_margin_percent(margin_percent)
            key = category_storage_key(category or "")
            if not key:
                raise ValidationError(
                    "Category must contain a letter or digit", field="category",
                )

            row = self._session.execute(
                select(MarginSettingModel).where(MarginSettingModel.category_key == key)
            ).scalar_one_or_none()
            if row is None:
                row = MarginSettingModel(
                    id=uuid4(),
                    category=category.strip(),
                    category_key=key,
                    margin_percent=value,
                    created_by_id=actor_id,
                )
                self._session.add(row)
            else:
                row.margin_percent = value
                row.updated_by_id = actor_id
            self._session.flush()

            logger.info(
                "category_margin_set",
                extra={"category": row.category, "category_key": key, "margin_percent": str(value)},
            )
            return row.to_dto()

        return self._run("margin_category_set", body, category=category)

    def set_global_margin(
        self,
        margin_percent: Any,
        actor_id: UUID | None = None,
    ) -> OperationResult[MarginSetting]:
        """Set the global default; updates the NULL-category row and SystemConfig."""

        def body() -> MarginSetting:
            value = require_margin_percent(margin_percent)
            config_row = ensure_system_config(self._session, self._config)
            config_row.default_margin_percent = value
            config_row.updated_by_id = actor_id

            row = _global_row(self._session)
            if row is None:
                row = MarginSettingModel(
                    id=uuid4(),
                    category=None,
                    category_key=GLOBAL_CATEGORY_KEY,
                    margin_percent=value,
                    created_by_id=actor_id,
                )
                self._session.add(row)
            else:
                row.margin_percent = value
                row.updated_by_id = actor_id
            self._session.flush()

            logger.info("global_margin_set", extra={"margin_percent": str(value)})
            return row.to_dto()

        return self._run("margin_global_set", body)

    def set_client_margin(
        self,
        client_id: UUID,
        margin_percent: Any | None,
        actor_id: UUID | None = None,
    ) -> OperationResult[ClientMargin]:
        """Set a client-specific margin, or clear it with ``None``."""

        def body() -> ClientMargin:
            value = None if margin_percent is None else require_margin_percent(margin_percent)
            client = self._session.get(UserModel, client_id)
            if client is None:
                raise EntityNotFoundError("User", client_id)
            if not client.is_client:
                raise ValidationError(f"User {client_id} is not a client", field="client_id")
            client.client_margin = value
            client.updated_by_id = actor_id
            self._session.flush()

            logger.info(
                "client_margin_set",
                extra={"client_id": str(client_id), "margin_percent": str(value)},
            )
            return ClientMargin(client_id=client_id, margin_percent=value)

        with LogContext.bind(client_id=client_id):
            return self._run("margin_client_set", body, client_id=client_id)

    def resolve_for_quote(
        self,
        quote_id: UUID,
        manual_overrides: Mapping[UUID, Decimal] | None = None,
    ) -> OperationResult[ResolvedMargin]:
        """
        Resolve the margin for a stored quote.

        ``manual_overrides`` is the admin's in-progress edits keyed by
        quote id; it is never persisted.
        """
        def body() -> ResolvedMargin:
            quote = self._session.get(QuoteModel, quote_id)
            if quote is None:
                raise EntityNotFoundError("Quote", quote_id)
            rfq = self._session.get(RFQModel, quote.rfq_id)
            if rfq is None:
                raise EntityNotFoundError("RFQ", quote.rfq_id)
            client = self._session.get(UserModel, rfq.client_id)

            # Edits for other quotes are not validated here
            overrides = None
            if manual_overrides and quote_id in manual_overrides:
                overrides = {quote_id: require_margin_percent(manual_overrides[quote_id])}
            category = RFQSelector(self._session).quote_category(
                rfq.id, self._config.default_category,
            )
            return resolve_margin(
                quote_id,
                category,
                global_default=self._selector.global_default(self._config.default_margin_percent),
                category_settings=self._selector.category_settings(),
                client_margin=client.client_margin if client is not None else None,
                client_label=client.display_name if client is not None else None,
                manual_overrides=overrides,
            )

        with LogContext.bind(quote_id=quote_id):
            return self._run("margin_resolve", body, quote_id=quote_id)
