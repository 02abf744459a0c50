"""
RFQ read paths (``sourcing_modules.rfq.selector``).
"""

from uuid import UUID

from sqlalchemy import select

from sourcing_kernel.models.product import ProductModel
from sourcing_kernel.selectors.base import BaseSelector
from sourcing_modules.rfq.models import RFQ
from sourcing_modules.rfq.orm import RFQModel


class RFQSelector(BaseSelector):

    def get(self, rfq_id: UUID) -> RFQ | None:
        row = self.session.get(RFQModel, rfq_id)
        return row.to_dto() if row is not None else None

    def quote_category(self, rfq_id: UUID, default: str) -> str:
        """
        Category used for margin resolution of every quote on the RFQ.

        The category of the product on the RFQ's first item.  Falls back
        to ``default`` when the RFQ has no items, the first item has no
        product, or the product has no category.  Later items are not
        consulted even when their categories differ.
        """
        rfq = self.session.get(RFQModel, rfq_id)
        if rfq is None or not rfq.items:
            return default
        first = rfq.items[0]
        if first.product_id is None:
            return default
        category = self.session.execute(
            select(ProductModel.category).where(ProductModel.id == first.product_id)
        ).scalar_one_or_none()
        return category or default
