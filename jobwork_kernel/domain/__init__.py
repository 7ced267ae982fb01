"""
Pure domain layer.

This module contains pure data transfer objects and value enums with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from jobwork_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from jobwork_kernel.domain.dtos import (
    ChangeNotification,
    MoveRecord,
    PartnerRecord,
    ReceiptRecord,
)
from jobwork_kernel.domain.values import MoveStatus, QcOutcome

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ChangeNotification",
    "MoveRecord",
    "PartnerRecord",
    "ReceiptRecord",
    "MoveStatus",
    "QcOutcome",
]
