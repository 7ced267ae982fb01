"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The receipt ledger is only trustworthy if history cannot be rewritten.
Corrections are new compensating records, never edits.  ReceiptRecorder
already follows that rule; these listeners make sure nothing else in the
process can break it by accident.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database:

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityError
         |
         v
    [before_delete event] --> _check_*_delete() --> ImmutabilityError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity           | Rule                                         | Error
-----------------|----------------------------------------------|---------------------------
ExternalReceipt  | No UPDATE, no DELETE                         | ReceiptImmutableError
ExternalMove     | quantity_sent frozen once receipts exist     | QuantityLockedError
ExternalMove     | status never regresses                       | InvariantViolationError
ExternalMove     | voided_at never cleared; no DELETE           | ImmutabilityViolationError

===============================================================================
USAGE
===============================================================================

    from jobwork_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, func, select
from sqlalchemy.orm.attributes import get_history

from jobwork_kernel.exceptions import (
    ImmutabilityViolationError,
    InvariantViolationError,
    QuantityLockedError,
    ReceiptImmutableError,
)
from jobwork_kernel.invariants import LedgerInvariant
from jobwork_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_receipt_update(mapper, connection, target):
    """Receipts are append-only."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": LedgerInvariant.RECEIPT_IMMUTABILITY.value,
            "entity_type": "ExternalReceipt",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ReceiptImmutableError(receipt_id=str(target.id), operation="UPDATE")


def _check_receipt_delete(mapper, connection, target):
    """Receipts cannot be deleted."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": LedgerInvariant.RECEIPT_IMMUTABILITY.value,
            "entity_type": "ExternalReceipt",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ReceiptImmutableError(receipt_id=str(target.id), operation="DELETE")


def _move_has_receipts(connection, move_id) -> bool:
    from jobwork_kernel.models.move import ExternalReceipt

    count = connection.execute(
        select(func.count(ExternalReceipt.id)).where(ExternalReceipt.move_id == move_id)
    ).scalar_one()
    return count > 0


def _check_move_update(mapper, connection, target):
    """
    Guard the ledger-relevant fields of a move.

    - quantity_sent is frozen once any receipt references the move.
    - status may only advance along sent -> partially_received -> received_full.
    - voided_at, once set, stays set.
    """
    from jobwork_kernel.domain.values import MoveStatus

    qty_history = get_history(target, "quantity_sent")
    if qty_history.deleted and qty_history.added:
        old_qty = qty_history.deleted[0]
        new_qty = qty_history.added[0]
        if old_qty != new_qty and _move_has_receipts(connection, target.id):
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "invariant": LedgerInvariant.QUANTITY_LOCK.value,
                    "entity_type": "ExternalMove",
                    "entity_id": str(target.id),
                    "old_quantity": old_qty,
                    "new_quantity": new_qty,
                },
            )
            raise QuantityLockedError(
                move_id=str(target.id),
                old_quantity=old_qty,
                new_quantity=new_qty,
            )

    status_history = get_history(target, "status")
    if status_history.deleted and status_history.added:
        old_status = MoveStatus(status_history.deleted[0])
        new_status = MoveStatus(status_history.added[0])
        if new_status.rank < old_status.rank:
            logger.critical(
                "status_regression_blocked",
                extra={
                    "invariant": LedgerInvariant.STATUS_MONOTONICITY.value,
                    "entity_id": str(target.id),
                    "old_status": old_status.value,
                    "new_status": new_status.value,
                },
            )
            raise InvariantViolationError(
                invariant=LedgerInvariant.STATUS_MONOTONICITY.value,
                move_id=str(target.id),
                detail=f"status {old_status.value} -> {new_status.value}",
            )

    void_history = get_history(target, "voided_at")
    if void_history.deleted and void_history.deleted[0] is not None:
        if not void_history.added or void_history.added[0] is None:
            raise ImmutabilityViolationError(
                entity_type="ExternalMove",
                entity_id=str(target.id),
                reason="A voided move cannot be reinstated",
            )


def _check_move_delete(mapper, connection, target):
    """Moves are voided, never deleted."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "ExternalMove",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="ExternalMove",
        entity_id=str(target.id),
        reason="Moves cannot be deleted; void them instead",
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Safe to call more than once.
    """
    from jobwork_kernel.models.move import ExternalMove, ExternalReceipt

    for target, event_name, fn in _LISTENERS(ExternalMove, ExternalReceipt):
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from jobwork_kernel.models.move import ExternalMove, ExternalReceipt

    for target, event_name, fn in _LISTENERS(ExternalMove, ExternalReceipt):
        _safe_remove_listener(target, event_name, fn)


def _LISTENERS(move_cls, receipt_cls):
    return (
        (receipt_cls, "before_update", _check_receipt_update),
        (receipt_cls, "before_delete", _check_receipt_delete),
        (move_cls, "before_update", _check_move_update),
        (move_cls, "before_delete", _check_move_delete),
    )
