"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The stock ledger is the source of truth for on-hand quantities.  If a
movement row could be edited, ``current_stock`` would silently stop being
explainable by the ledger.  Corrections are therefore always new offsetting
movements, never edits.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check our invariants:

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() -----------------+
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | Rule                                  | Why
--------------------|---------------------------------------|-------------------------------
StockMovement       | No UPDATE, no DELETE                  | Ledger is append-only
Receipt             | No UPDATE, no DELETE                  | Receiving evidence
ReceiptItem         | No UPDATE, no DELETE                  | Links PO line to movement
PurchaseOrderItem   | quantity_received may not decrease    | Monotonic receiving

Bulk Core statements (``update(...)``) bypass mapper events.  The kernel's
only bulk statements are the additive stock and quantity_received
increments, which cannot violate these rules.

===============================================================================
USAGE
===============================================================================

    from stock_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _has_column_changes(target) -> bool:
    """True if any mapped column attribute of ``target`` has pending changes.

    Mapper ``before_update`` also fires for objects that are only dirty
    through a relationship collection; those issue no UPDATE.
    """
    state = inspect(target)
    for attr in state.mapper.column_attrs:
        if state.attrs[attr.key].history.has_changes():
            return True
    return False


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": "append_only_ledger",
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_stock_movement_immutability(mapper, connection, target):
    if not _has_column_changes(target):
        return
    _block(
        "StockMovement",
        target,
        "UPDATE",
        "Stock movements are immutable; record an offsetting movement instead",
    )


def _check_stock_movement_delete(mapper, connection, target):
    _block("StockMovement", target, "DELETE", "Stock movements cannot be deleted")


def _check_receipt_immutability(mapper, connection, target):
    if not _has_column_changes(target):
        return
    _block("Receipt", target, "UPDATE", "Receipts are immutable")


def _check_receipt_delete(mapper, connection, target):
    _block("Receipt", target, "DELETE", "Receipts cannot be deleted")


def _check_receipt_item_immutability(mapper, connection, target):
    if not _has_column_changes(target):
        return
    _block("ReceiptItem", target, "UPDATE", "Receipt items are immutable")


def _check_receipt_item_delete(mapper, connection, target):
    _block("ReceiptItem", target, "DELETE", "Receipt items cannot be deleted")


def _check_po_item_quantity_received(mapper, connection, target):
    """
    Prevent quantity_received on a PO item from going down.

    history.deleted holds the value loaded from the database,
    history.added the value about to be written.
    """
    history = get_history(target, "quantity_received")
    if not history.added or not history.deleted:
        return
    old_value = history.deleted[0]
    new_value = history.added[0]
    if old_value is None or new_value is None or new_value >= old_value:
        return
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": "monotonic_receiving",
            "entity_type": "PurchaseOrderItem",
            "entity_id": str(target.id),
            "operation": "UPDATE",
            "old_value": old_value,
            "new_value": new_value,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="PurchaseOrderItem",
        entity_id=str(target.id),
        reason=f"quantity_received cannot decrease ({old_value} -> {new_value})",
    )


def _listeners():
    from stock_kernel.models.purchase_order import PurchaseOrderItem
    from stock_kernel.models.receipt import Receipt, ReceiptItem
    from stock_kernel.models.stock_movement import StockMovement

    return (
        (StockMovement, "before_update", _check_stock_movement_immutability),
        (StockMovement, "before_delete", _check_stock_movement_delete),
        (Receipt, "before_update", _check_receipt_immutability),
        (Receipt, "before_delete", _check_receipt_delete),
        (ReceiptItem, "before_update", _check_receipt_item_immutability),
        (ReceiptItem, "before_delete", _check_receipt_item_delete),
        (PurchaseOrderItem, "before_update", _check_po_item_quantity_received),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Safe to call more than once.  Call after models are importable and
    before any database operations begin.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
