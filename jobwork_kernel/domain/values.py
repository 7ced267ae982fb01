"""
Value enums for the external-processing ledger.

Responsibility:
    Canonical string enums shared by models, engines and services: the move
    lifecycle status (with its monotonic ordering) and the return QC
    outcome.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Imported by every other layer.
"""

from __future__ import annotations

from enum import Enum


class MoveStatus(str, Enum):
    """
    Lifecycle state of a move, derived from its receipt history.

    Contract:
        The order of declaration is the monotonic order. ``rank`` exposes it
        so callers can compare states without string matching.
    """

    SENT = "sent"
    PARTIALLY_RECEIVED = "partially_received"
    RECEIVED_FULL = "received_full"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @property
    def is_active(self) -> bool:
        """True while pieces are still out at the partner."""
        return self is not MoveStatus.RECEIVED_FULL


_STATUS_RANK: dict[MoveStatus, int] = {
    MoveStatus.SENT: 0,
    MoveStatus.PARTIALLY_RECEIVED: 1,
    MoveStatus.RECEIVED_FULL: 2,
}


class QcOutcome(str, Enum):
    """QC result recorded on a return when the partner requires inbound QC."""

    PASS = "pass"
    FAIL = "fail"
    PENDING = "pending"
