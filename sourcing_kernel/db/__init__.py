"""Database layer - engine, base classes, types, guards, and immutability."""

from sourcing_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from sourcing_kernel.db.engine import create_tables, get_engine, get_session
from sourcing_kernel.db.types import Money, Percent, round_money

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
    "Money",
    "Percent",
    "round_money",
]
