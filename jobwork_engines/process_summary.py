"""
Module: jobwork_engines.process_summary
Responsibility:
    Group moves by process type for floor-status views: pieces still out,
    open moves, overdue moves and how long the open moves have been
    waiting, alongside how the process has performed on the moves that
    came back (turnaround, on-time share, pieces rejected).

Architecture position:
    Engines -- pure calculation layer, zero I/O.  A stateless fold over
    reconciled views; safe to recompute on every refresh.

Invariants enforced:
    - Floor figures count active moves only (not complete, not voided).
    - Sum of piece_count_outstanding over all buckets equals the sum of
      quantity_outstanding over all active views.
    - average_wait_hours is 0 for a bucket with no active moves.
    - Performance figures count complete, non-voided moves dispatched in
      the trailing window (all of them when no window is given).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from jobwork_kernel.domain.values import MoveStatus
from jobwork_kernel.logging_config import get_logger
from jobwork_engines.partner_performance import (
    average_turnaround,
    is_on_time,
    loss_percentage,
    percent,
)
from jobwork_engines.reconciliation import ReconciledMoveView
from jobwork_engines.tracer import traced_engine

logger = get_logger("engines.process_summary")

_CENT = Decimal("0.01")
_SECONDS_PER_HOUR = 3600


@dataclass(frozen=True)
class ProcessSummary:
    """Floor status and return performance of one process type."""

    process_type: str
    piece_count_outstanding: int = 0
    active_move_count: int = 0
    overdue_count: int = 0
    average_wait_hours: Decimal = Decimal("0.00")
    completed_count: int = 0
    average_turnaround_days: Decimal | None = None
    on_time_percent: Decimal = Decimal("0.00")
    quantity_rejected: int = 0
    loss_percentage: Decimal = Decimal("0.00")

    def to_dict(self) -> dict:
        return {
            "process_type": self.process_type,
            "piece_count_outstanding": self.piece_count_outstanding,
            "active_move_count": self.active_move_count,
            "overdue_count": self.overdue_count,
            "average_wait_hours": str(self.average_wait_hours),
            "completed_count": self.completed_count,
            "average_turnaround_days": (
                str(self.average_turnaround_days)
                if self.average_turnaround_days is not None
                else None
            ),
            "on_time_percent": str(self.on_time_percent),
            "quantity_rejected": self.quantity_rejected,
            "loss_percentage": str(self.loss_percentage),
        }


def _average_wait_hours(active: list[ReconciledMoveView], as_of: datetime) -> Decimal:
    if not active:
        return Decimal("0.00")
    # Moves stamped after as_of (clock skew between terminals) wait 0.
    wait_seconds = sum(
        max(0, int((as_of - v.dispatch_moment).total_seconds())) for v in active
    )
    return (
        Decimal(wait_seconds) / Decimal(_SECONDS_PER_HOUR * len(active))
    ).quantize(_CENT, rounding=ROUND_HALF_UP)


@traced_engine("process_summary", "1.1", fingerprint_fields=("as_of", "window_days"))
def summarize_by_process(
    views: Iterable[ReconciledMoveView],
    as_of: datetime,
    process_types: Iterable[str] = (),
    window_days: int | None = None,
) -> dict[str, ProcessSummary]:
    """
    Fold views into one summary per process type.

    Args:
        views: Reconciled moves.  Voided ones are skipped.
        as_of: Moment the wait times are measured to (timezone-aware).
        process_types: Processes to report even when nothing is out, so
            the floor view always shows a row per process.
        window_days: Trailing window, by dispatch date, for the
            performance figures.  None counts every complete move.

    Returns:
        Mapping of process type to summary, sorted by process type.

    Raises:
        ValueError: ``window_days`` is negative.
    """
    if window_days is not None and window_days < 0:
        raise ValueError(f"window_days cannot be negative, got {window_days}")

    as_of_date = as_of.date()
    window_start = as_of_date - timedelta(days=window_days) if window_days is not None else None

    active_by_process: dict[str, list[ReconciledMoveView]] = {p: [] for p in process_types}
    completed_by_process: dict[str, list[ReconciledMoveView]] = {p: [] for p in process_types}
    for view in views:
        if view.is_voided:
            continue
        if view.is_active:
            active_by_process.setdefault(view.process_type, []).append(view)
            completed_by_process.setdefault(view.process_type, [])
        elif view.status is MoveStatus.RECEIVED_FULL and (
            window_start is None or window_start <= view.dispatch_date <= as_of_date
        ):
            completed_by_process.setdefault(view.process_type, []).append(view)
            active_by_process.setdefault(view.process_type, [])

    summaries: dict[str, ProcessSummary] = {}
    for process_type in sorted(active_by_process):
        active = active_by_process[process_type]
        completed = completed_by_process[process_type]

        summaries[process_type] = ProcessSummary(
            process_type=process_type,
            piece_count_outstanding=sum(v.quantity_outstanding for v in active),
            active_move_count=len(active),
            overdue_count=sum(1 for v in active if v.overdue_on(as_of_date)),
            average_wait_hours=_average_wait_hours(active, as_of),
            completed_count=len(completed),
            average_turnaround_days=average_turnaround(completed),
            on_time_percent=percent(sum(1 for v in completed if is_on_time(v)), len(completed)),
            quantity_rejected=sum(v.quantity_rejected for v in completed),
            loss_percentage=loss_percentage(completed),
        )

    return summaries
