"""
Data Transfer Objects -- immutable records crossing the kernel boundary.

Responsibility:
    Frozen dataclasses that carry partner, move and receipt data from the
    persistence layer (selectors) into the pure engines.  Engines never see
    ORM instances; they fold these records.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Structural checks only (positive quantities, non-empty process set).
      Cross-record rules (conservation, QC) belong to the write services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import UUID

from jobwork_kernel.domain.values import MoveStatus, QcOutcome


@dataclass(frozen=True)
class PartnerRecord:
    """
    Partner Directory entry.

    Guarantees:
        - ``process_types`` is non-empty.
        - ``lead_time_days`` >= 0.
    """

    partner_id: UUID
    name: str
    process_types: frozenset[str]
    requires_return_qc: bool = False
    lead_time_days: int = 7
    is_active: bool = True

    def __post_init__(self) -> None:
        if not self.process_types:
            raise ValueError(f"Partner {self.name!r} must support at least one process")
        if self.lead_time_days < 0:
            raise ValueError("lead_time_days cannot be negative")

    def supports(self, process_type: str) -> bool:
        return process_type in self.process_types


@dataclass(frozen=True)
class MoveRecord:
    """
    One outbound dispatch of a batch to one partner for one process.

    ``recorded_status`` is the status last materialized by the receipt
    recorder.  Engines derive the true status from receipts and only use the
    recorded value to detect backward transitions.
    """

    move_id: UUID
    work_order_id: str
    partner_id: UUID
    process_type: str
    quantity_sent: int
    dispatch_date: date
    expected_return_date: date | None = None
    dispatched_at: datetime | None = None
    recorded_status: MoveStatus = MoveStatus.SENT
    challan_no: str | None = None
    voided_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.quantity_sent <= 0:
            raise ValueError(f"quantity_sent must be positive, got {self.quantity_sent}")

    @property
    def is_voided(self) -> bool:
        return self.voided_at is not None


@dataclass(frozen=True)
class ReceiptRecord:
    """
    One physical return event against a move.

    ``sequence`` is the 1-based insertion order within the move.
    ``quantity_rejected`` counts the pieces in this return that failed
    inspection; they are back on the floor, so they count as received.
    """

    receipt_id: UUID
    move_id: UUID
    quantity_received: int
    received_date: date
    sequence: int = 0
    qc_outcome: QcOutcome | None = None
    remarks: str | None = None
    quantity_rejected: int = 0

    def __post_init__(self) -> None:
        if self.quantity_received <= 0:
            raise ValueError(
                f"quantity_received must be positive, got {self.quantity_received}"
            )
        if not 0 <= self.quantity_rejected <= self.quantity_received:
            raise ValueError(
                f"quantity_rejected must be in [0, {self.quantity_received}], "
                f"got {self.quantity_rejected}"
            )


@dataclass(frozen=True)
class ChangeNotification:
    """
    Row-change signal delivered by the realtime transport.

    The engine holds no state; a notification only tells the dashboard
    service that a recompute is due.
    """

    table: str
    operation: str = "*"
    record_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
