"""Read-only query selectors."""

from sourcing_kernel.selectors.base import BaseSelector

__all__ = ["BaseSelector"]
