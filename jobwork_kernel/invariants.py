"""
Kernel Invariants Contract.

These invariants are structural law for the external-processing ledger.
No configuration value may override them.

This module exists solely to declare them explicitly. Enforcement is
distributed across the reconciliation engine, ReceiptRecorder, the
per-move lock registry and the ORM immutability listeners.
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    QUANTITY_CONSERVATION = "quantity_conservation"
    """Sum of received quantity never exceeds quantity sent. Enforced by
    ReceiptRecorder before insert and re-checked by reconcile()."""

    STATUS_MONOTONICITY = "status_monotonicity"
    """A move's status never moves backward along
    sent -> partially_received -> received_full. Asserted by
    ReceiptRecorder as a post-condition of every receipt."""

    DERIVED_STATUS = "derived_status"
    """Status is a pure function of the receipt history. It is materialized
    on write by ReceiptRecorder only, never set by callers."""

    RECEIPT_IMMUTABILITY = "receipt_immutability"
    """Receipts are append-only. Enforced by ORM listeners
    (jobwork_kernel.db.immutability)."""

    QUANTITY_LOCK = "quantity_lock"
    """quantity_sent is immutable once receipts exist against the move.
    Enforced by ORM listeners."""

    PER_MOVE_SERIALIZATION = "per_move_serialization"
    """Receipt check-and-append is atomic per move. Enforced by
    MoveLockRegistry plus SELECT ... FOR UPDATE on the move row."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "jobwork_services",
    "jobwork_config",
    "jobwork_engines",
)
