"""Shared ORM models for the sourcing kernel."""

from sourcing_kernel.models.product import (
    ProductAvailability,
    ProductModel,
    normalize_availability,
)
from sourcing_kernel.models.user import PaymentTerms, UserModel, UserRole

__all__ = [
    "PaymentTerms",
    "ProductAvailability",
    "ProductModel",
    "UserModel",
    "UserRole",
    "normalize_availability",
]
