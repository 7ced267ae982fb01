"""
Module: jobwork_engines.reconciliation
Responsibility:
    Derive the reconciled view of a move from its receipt history:
    quantity outstanding, lifecycle status, overdue flag and age.  This is
    the single place where status is computed; nothing else may decide
    whether a move is sent, partially received or complete.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import jobwork_kernel domain, exceptions, invariants and
    logging.

Invariants enforced:
    - Purity: no clock access, no I/O.  ``as_of_date`` is always passed in.
    - Idempotence: identical inputs always produce an identical view.
    - Conservation: a negative outstanding quantity raises
      InvariantViolationError.
    - Monotonicity: a derived status ranked below the move's recorded
      status raises InvariantViolationError.

Failure modes:
    - ValueError if a receipt belongs to a different move.
    - InvariantViolationError (fatal, logged CRITICAL) as above.

Usage:
    from jobwork_engines.reconciliation import reconcile

    view = reconcile(move, receipts, as_of_date=date(2024, 3, 1))
    view.quantity_outstanding  # 60
    view.status                # MoveStatus.PARTIALLY_RECEIVED
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from uuid import UUID

from jobwork_kernel.domain.dtos import MoveRecord, ReceiptRecord
from jobwork_kernel.domain.values import MoveStatus
from jobwork_kernel.exceptions import InvariantViolationError
from jobwork_kernel.invariants import LedgerInvariant
from jobwork_kernel.logging_config import get_logger
from jobwork_engines.tracer import traced_engine

logger = get_logger("engines.reconciliation")


@dataclass(frozen=True)
class ReconciledMoveView:
    """
    Derived state of one move as of a given day.

    Contract:
        Frozen dataclass; recomputed on every read, never stored.
    Guarantees:
        - quantity_received + quantity_outstanding == quantity_sent.
        - status == RECEIVED_FULL iff quantity_outstanding == 0.
        - is_overdue is never True for a complete or voided move.
        - age_in_days is None once the move is complete.
        - completed_on is the latest receipt date of a complete move.
        - 0 <= quantity_rejected <= quantity_received.
    """

    move_id: UUID
    work_order_id: str
    partner_id: UUID
    process_type: str
    challan_no: str | None
    quantity_sent: int
    quantity_received: int
    quantity_outstanding: int
    status: MoveStatus
    dispatch_date: date
    dispatched_at: datetime | None
    expected_return_date: date | None
    as_of_date: date
    is_overdue: bool
    days_overdue: int
    age_in_days: int | None
    completed_on: date | None
    receipt_count: int
    is_voided: bool = False
    quantity_rejected: int = 0

    @property
    def is_active(self) -> bool:
        """Pieces are still out at the partner and the move counts."""
        return not self.is_voided and self.status.is_active

    @property
    def quantity_accepted(self) -> int:
        """Pieces back that passed inspection."""
        return self.quantity_received - self.quantity_rejected

    @property
    def turnaround_days(self) -> int | None:
        """Days from dispatch to the final return, once complete."""
        if self.completed_on is None:
            return None
        return (self.completed_on - self.dispatch_date).days

    @property
    def dispatch_moment(self) -> datetime:
        """Dispatch timestamp, or midnight UTC of the dispatch day."""
        if self.dispatched_at is not None:
            return self.dispatched_at
        return datetime.combine(self.dispatch_date, time.min, tzinfo=timezone.utc)

    def overdue_on(self, as_of_date: date) -> bool:
        """Overdue test against an arbitrary day."""
        return (
            self.is_active
            and self.expected_return_date is not None
            and self.expected_return_date < as_of_date
        )

    def to_dict(self) -> dict:
        return {
            "move_id": str(self.move_id),
            "work_order_id": self.work_order_id,
            "partner_id": str(self.partner_id),
            "process_type": self.process_type,
            "challan_no": self.challan_no,
            "quantity_sent": self.quantity_sent,
            "quantity_received": self.quantity_received,
            "quantity_rejected": self.quantity_rejected,
            "quantity_outstanding": self.quantity_outstanding,
            "status": self.status.value,
            "dispatch_date": self.dispatch_date.isoformat(),
            "dispatched_at": self.dispatched_at.isoformat() if self.dispatched_at else None,
            "expected_return_date": (
                self.expected_return_date.isoformat() if self.expected_return_date else None
            ),
            "as_of_date": self.as_of_date.isoformat(),
            "is_overdue": self.is_overdue,
            "days_overdue": self.days_overdue,
            "age_in_days": self.age_in_days,
            "completed_on": self.completed_on.isoformat() if self.completed_on else None,
            "turnaround_days": self.turnaround_days,
            "receipt_count": self.receipt_count,
            "is_voided": self.is_voided,
        }


def derive_status(quantity_sent: int, quantity_received: int) -> MoveStatus:
    """Status as a pure function of quantities."""
    if quantity_received <= 0:
        return MoveStatus.SENT
    if quantity_received >= quantity_sent:
        return MoveStatus.RECEIVED_FULL
    return MoveStatus.PARTIALLY_RECEIVED


def status_progression(
    quantity_sent: int,
    receipts: Sequence[ReceiptRecord],
) -> tuple[MoveStatus, ...]:
    """
    Status after each receipt, in insertion order, starting from SENT.

    Receipts are ordered by sequence; the result has len(receipts) + 1
    entries.
    """
    statuses = [MoveStatus.SENT]
    running = 0
    for receipt in sorted(receipts, key=lambda r: r.sequence):
        running += receipt.quantity_received
        statuses.append(derive_status(quantity_sent, running))
    return tuple(statuses)


@traced_engine("reconciliation", "1.0", fingerprint_fields=("move", "receipts", "as_of_date"))
def reconcile(
    move: MoveRecord,
    receipts: Sequence[ReceiptRecord],
    as_of_date: date,
) -> ReconciledMoveView:
    """
    Build the reconciled view of ``move`` from its full receipt history.

    Preconditions:
        Every receipt references ``move``.

    Raises:
        ValueError: A receipt belongs to another move.
        InvariantViolationError: Receipts exceed the quantity sent, or the
            derived status is behind the status already recorded.
    """
    for receipt in receipts:
        if receipt.move_id != move.move_id:
            raise ValueError(
                f"Receipt {receipt.receipt_id} belongs to move {receipt.move_id}, "
                f"not {move.move_id}"
            )

    quantity_received = sum(r.quantity_received for r in receipts)
    quantity_outstanding = move.quantity_sent - quantity_received

    if quantity_outstanding < 0:
        logger.critical(
            "invariant_violation",
            extra={
                "invariant": LedgerInvariant.QUANTITY_CONSERVATION.value,
                "move_id": str(move.move_id),
                "quantity_sent": move.quantity_sent,
                "quantity_received": quantity_received,
            },
        )
        raise InvariantViolationError(
            invariant=LedgerInvariant.QUANTITY_CONSERVATION.value,
            move_id=str(move.move_id),
            detail=(
                f"received {quantity_received} exceeds sent {move.quantity_sent} "
                f"(outstanding {quantity_outstanding})"
            ),
        )

    status = derive_status(move.quantity_sent, quantity_received)

    if status.rank < move.recorded_status.rank:
        logger.critical(
            "invariant_violation",
            extra={
                "invariant": LedgerInvariant.STATUS_MONOTONICITY.value,
                "move_id": str(move.move_id),
                "recorded_status": move.recorded_status.value,
                "derived_status": status.value,
            },
        )
        raise InvariantViolationError(
            invariant=LedgerInvariant.STATUS_MONOTONICITY.value,
            move_id=str(move.move_id),
            detail=(
                f"derived status {status.value} is behind recorded "
                f"status {move.recorded_status.value}"
            ),
        )

    complete = status is MoveStatus.RECEIVED_FULL
    is_overdue = (
        not complete
        and not move.is_voided
        and move.expected_return_date is not None
        and move.expected_return_date < as_of_date
    )

    return ReconciledMoveView(
        move_id=move.move_id,
        work_order_id=move.work_order_id,
        partner_id=move.partner_id,
        process_type=move.process_type,
        challan_no=move.challan_no,
        quantity_sent=move.quantity_sent,
        quantity_received=quantity_received,
        quantity_outstanding=quantity_outstanding,
        status=status,
        dispatch_date=move.dispatch_date,
        dispatched_at=move.dispatched_at,
        expected_return_date=move.expected_return_date,
        as_of_date=as_of_date,
        is_overdue=is_overdue,
        days_overdue=(as_of_date - move.expected_return_date).days if is_overdue else 0,
        age_in_days=None if complete else max(0, (as_of_date - move.dispatch_date).days),
        completed_on=max(r.received_date for r in receipts) if complete else None,
        receipt_count=len(receipts),
        is_voided=move.is_voided,
        quantity_rejected=sum(r.quantity_rejected for r in receipts),
    )


def reconcile_all(
    ledger: Iterable[tuple[MoveRecord, Sequence[ReceiptRecord]]],
    as_of_date: date,
) -> list[ReconciledMoveView]:
    """Reconcile every (move, receipts) pair, preserving input order."""
    return [reconcile(move, receipts, as_of_date) for move, receipts in ledger]
