"""
Margin read paths (``sourcing_modules.margins.selector``).

Read-only; the caller owns the session.
"""

from decimal import Decimal

from sqlalchemy import select

from sourcing_kernel.selectors.base import BaseSelector
from sourcing_modules.margins.models import CategoryMargin
from sourcing_modules.margins.orm import (
    SYSTEM_CONFIG_KEY,
    MarginSettingModel,
    SystemConfigModel,
)


class MarginSelector(BaseSelector):
    """Reads margin settings and the stored global default."""

    def category_settings(self) -> tuple[CategoryMargin, ...]:
        rows = self.session.execute(
            select(MarginSettingModel)
            .where(MarginSettingModel.category.is_not(None))
            .order_by(MarginSettingModel.category_key)
        ).scalars()
        return tuple(
            CategoryMargin(category=row.category, margin_percent=row.margin_percent)
            for row in rows
        )

    def system_config(self) -> SystemConfigModel | None:
        return self.session.execute(
            select(SystemConfigModel).where(
                SystemConfigModel.singleton_key == SYSTEM_CONFIG_KEY
            )
        ).scalar_one_or_none()

    def global_default(self, fallback: Decimal) -> Decimal:
        """
        The global default margin.

        ``SystemConfig.default_margin_percent`` when the row exists, then
        the NULL-category setting row, then ``fallback``.
        """
        config_row = self.system_config()
        if config_row is not None:
            return config_row.default_margin_percent
        global_row = self.session.execute(
            select(MarginSettingModel).where(MarginSettingModel.category.is_(None))
        ).scalar_one_or_none()
        if global_row is not None:
            return global_row.margin_percent
        return fallback
