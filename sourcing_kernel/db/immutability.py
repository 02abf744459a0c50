"""
ORM-level immutability enforcement.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners registered here inspect attribute history and
raise ``ImmutabilityViolationError`` before any SQL is sent:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Protected entities
------------------

Entity                 | When immutable          | Frozen fields
-----------------------|-------------------------|------------------------------
CreditLimitAdjustment  | ALWAYS (append-only)    | every field
Order                  | from creation           | quote, parties, amount
OrderLine              | ALWAYS                  | every field (line snapshot)
RFQItem                | ALWAYS                  | every field
Quote                  | once ACCEPTED/REJECTED  | every field

``updated_at`` / ``updated_by_id`` are audit metadata and stay mutable.

Status compare-and-swap (``db/guards.py``) issues Core UPDATE statements,
which bypass mapper events; it only ever touches lifecycle columns.

Usage::

    from sourcing_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that must bypass the rules call ``unregister_immutability_listeners()``.
"""

from sqlalchemy import event, inspect

from sourcing_kernel.exceptions import ImmutabilityViolationError
from sourcing_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

AUDIT_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id"})

ORDER_FROZEN_FIELDS = frozenset({
    "quote_id",
    "rfq_id",
    "client_id",
    "supplier_id",
    "amount",
    "supplier_amount",
})

QUOTE_TERMINAL_STATUSES = frozenset({"ACCEPTED", "REJECTED"})


def _blocked(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _changed_fields(target, ignore: frozenset[str] = AUDIT_METADATA_FIELDS) -> list[str]:
    insp = inspect(target)
    return [
        attr.key
        for attr in insp.mapper.column_attrs
        if attr.key not in ignore and insp.attrs[attr.key].history.has_changes()
    ]


# =============================================================================
# Credit ledger
# =============================================================================


def _check_credit_adjustment_immutability(mapper, connection, target):
    """Credit ledger rows are append-only."""
    changed = _changed_fields(target)
    if not changed:
        return
    _blocked(
        "CreditLimitAdjustment", target.id, "UPDATE",
        "Credit limit adjustments are append-only",
        field=changed[0],
    )


def _check_credit_adjustment_delete(mapper, connection, target):
    _blocked(
        "CreditLimitAdjustment", target.id, "DELETE",
        "Credit limit adjustments cannot be deleted",
    )


# =============================================================================
# Orders
# =============================================================================


def _check_order_immutability(mapper, connection, target):
    """Only status, shipment and pickup fields change after creation."""
    for field in _changed_fields(target):
        if field in ORDER_FROZEN_FIELDS:
            _blocked(
                "Order", target.id, "UPDATE",
                f"Cannot modify frozen field '{field}' on an order",
                field=field,
            )


def _check_order_delete(mapper, connection, target):
    _blocked("Order", target.id, "DELETE", "Orders cannot be deleted")


def _check_order_line_immutability(mapper, connection, target):
    changed = _changed_fields(target)
    if not changed:
        return
    _blocked(
        "OrderLine", target.id, "UPDATE",
        "Order line snapshots are frozen at creation",
        field=changed[0],
    )


def _check_order_line_delete(mapper, connection, target):
    _blocked("OrderLine", target.id, "DELETE", "Order line snapshots cannot be deleted")


# =============================================================================
# RFQ items and quotes
# =============================================================================


def _check_rfq_item_immutability(mapper, connection, target):
    changed = _changed_fields(target)
    if not changed:
        return
    _blocked(
        "RFQItem", target.id, "UPDATE",
        "RFQ items cannot change after creation",
        field=changed[0],
    )


def _check_rfq_item_delete(mapper, connection, target):
    _blocked("RFQItem", target.id, "DELETE", "RFQ items cannot be deleted")


def _check_quote_immutability(mapper, connection, target):
    """A quote that reached ACCEPTED or REJECTED is sealed."""
    status_history = inspect(target).attrs["status"].history
    if status_history.deleted:
        previous = status_history.deleted[0]
    else:
        previous = target.status
    if previous not in QUOTE_TERMINAL_STATUSES:
        return
    changed = _changed_fields(target)
    if not changed:
        return
    _blocked(
        "Quote", target.id, "UPDATE",
        f"Quote is {previous} and can no longer change",
        field=changed[0],
    )


def _listener_table():
    from sourcing_modules.credit.orm import CreditLimitAdjustmentModel
    from sourcing_modules.orders.orm import OrderLineModel, OrderModel
    from sourcing_modules.quotes.orm import QuoteModel
    from sourcing_modules.rfq.orm import RFQItemModel

    return (
        (CreditLimitAdjustmentModel, "before_update", _check_credit_adjustment_immutability),
        (CreditLimitAdjustmentModel, "before_delete", _check_credit_adjustment_delete),
        (OrderModel, "before_update", _check_order_immutability),
        (OrderModel, "before_delete", _check_order_delete),
        (OrderLineModel, "before_update", _check_order_line_immutability),
        (OrderLineModel, "before_delete", _check_order_line_delete),
        (RFQItemModel, "before_update", _check_rfq_item_immutability),
        (RFQItemModel, "before_delete", _check_rfq_item_delete),
        (QuoteModel, "before_update", _check_quote_immutability),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: a listener already registered is not added twice.
    """
    for target, event_name, listener_fn in _listener_table():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally violate the rules.
    """
    for target, event_name, listener_fn in _listener_table():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
