"""
SQLAlchemy ORM persistence models for the Margins module.

Responsibility
--------------
Persist per-category margin settings, the global default margin row, and
the singleton system configuration row.

Invariants enforced
-------------------
* ``category_key`` is the canonical form of ``category`` and is unique,
  so two spellings of one category can never hold separate settings.
  The global row (``category IS NULL``) uses ``GLOBAL_CATEGORY_KEY``.
* ``SystemConfigModel`` has exactly one row, keyed by ``singleton_key``.
* Percent columns hold values in [0, 100] rounded to two places; the
  service validates before writing.
"""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sourcing_kernel.db.base import TrackedBase
from sourcing_kernel.db.types import Percent

GLOBAL_CATEGORY_KEY = "*"
SYSTEM_CONFIG_KEY = "default"


class MarginSettingModel(TrackedBase):
    """
    A margin percentage for one category, or the global default row.

    Writes are last-write-wins.
    """

    __tablename__ = "margin_settings"

    __table_args__ = (
        UniqueConstraint("category_key", name="uq_margin_category_key"),
    )

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category_key: Mapped[str] = mapped_column(String(100), nullable=False)
    margin_percent: Mapped[Percent] = mapped_column(nullable=False)

    @property
    def is_global(self) -> bool:
        return self.category is None

    def to_dto(self):
        from sourcing_modules.margins.models import MarginSetting

        return MarginSetting(
            id=self.id,
            category=self.category,
            margin_percent=self.margin_percent,
        )

    def __repr__(self) -> str:
        return f"<MarginSettingModel {self.category or 'GLOBAL'}: {self.margin_percent}%>"


class SystemConfigModel(TrackedBase):
    """
    Singleton marketplace settings row.

    Seeded from ``sourcing_config`` the first time it is read; never
    deleted afterwards.
    """

    __tablename__ = "system_config"

    __table_args__ = (
        UniqueConstraint("singleton_key", name="uq_system_config_singleton"),
    )

    singleton_key: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SYSTEM_CONFIG_KEY,
    )
    default_margin_percent: Mapped[Percent] = mapped_column(nullable=False)
    auto_quote_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    auto_quote_delay_minutes: Mapped[int] = mapped_column(nullable=False, default=30)
    auto_quote_lead_time_days: Mapped[int] = mapped_column(nullable=False, default=3)
    auto_quote_include_limited_stock: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )

    def __repr__(self) -> str:
        return f"<SystemConfigModel default_margin={self.default_margin_percent}%>"
