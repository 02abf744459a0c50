"""
Module: sourcing_kernel.db.guards
Responsibility: Single-writer-per-entity helpers.  Every lifecycle mutation
    in the kernel is a read-modify-write against one row; these helpers make
    the write conditional on the value that was read.
Architecture position: Kernel > DB.  May import from db/base.py and
    exceptions.py only.

Invariants enforced:
    - Check-then-act: ``compare_and_swap`` issues
      ``UPDATE ... WHERE id = :id AND <column> = :expected`` and raises
      ConcurrentModificationError when no row matched, so two concurrent
      "accept" calls on one quote cannot both succeed.
    - ``lock_for_update`` takes a row lock (FOR UPDATE on PostgreSQL; a
      no-op on SQLite, where the compare-and-swap alone serializes writers).

Failure modes:
    - ConcurrentModificationError when the guarded update matched zero rows.
"""

from typing import Any, TypeVar

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from sourcing_kernel.db.base import Base
from sourcing_kernel.exceptions import ConcurrentModificationError
from sourcing_kernel.logging_config import get_logger

logger = get_logger("db.guards")

ModelType = TypeVar("ModelType", bound=Base)


def lock_for_update(
    session: Session,
    model: type[ModelType],
    entity_id: Any,
) -> ModelType | None:
    """Load a row with a row-level lock and fresh attribute values."""
    return session.execute(
        select(model)
        .where(model.id == entity_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def compare_and_swap(
    session: Session,
    model: type[ModelType],
    entity_id: Any,
    column: str,
    expected: Any,
    values: dict[str, Any],
) -> ModelType:
    """
    Apply ``values`` to one row only if ``column`` still equals ``expected``.

    Postconditions:
        - Exactly one row was updated, and the refreshed ORM instance is
          returned.

    Raises:
        ConcurrentModificationError: the row's ``column`` no longer equals
            ``expected`` (or the row vanished).
    """
    stmt = (
        update(model)
        .where(model.id == entity_id, getattr(model, column) == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount != 1:
        logger.warning(
            "guarded_update_lost",
            extra={
                "entity_type": model.__name__,
                "entity_id": str(entity_id),
                "column": column,
                "expected": str(expected),
            },
        )
        raise ConcurrentModificationError(model.__name__, entity_id, str(expected))

    return session.execute(
        select(model)
        .where(model.id == entity_id)
        .execution_options(populate_existing=True)
    ).scalar_one()
