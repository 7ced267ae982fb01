"""
Module: jobwork_engines.partner_performance
Responsibility:
    Roll reconciled moves up into per-partner performance: open workload,
    overdue count and on-time return rate over a trailing window.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Purity: ``as_of_date`` is an explicit parameter.
    - Voided moves are never counted.
    - An empty trailing window reports a 0% rate with ``has_data=False``,
      never 100%.
    - Moves still outstanding inside the window are left out of the rate
      denominator; they have neither met nor missed their date yet.

Failure modes:
    - ValueError if ``window_days`` is negative.

Definitions:
    trailing window   dispatch_date in [as_of_date - window_days, as_of_date]
    on time           complete, and no expected date or completed_on <= expected
    turnaround        completed_on - dispatch_date, in days
    loss              pieces rejected on return / pieces sent, over completed
                      window moves only; open moves may still come back good
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from jobwork_kernel.domain.dtos import PartnerRecord
from jobwork_kernel.domain.values import MoveStatus
from jobwork_kernel.logging_config import get_logger
from jobwork_engines.reconciliation import ReconciledMoveView
from jobwork_engines.tracer import traced_engine

logger = get_logger("engines.partner_performance")

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PartnerStats:
    """
    Performance of one partner as of a given day.

    Guarantees:
        - on_time_count + late_count == completed_in_window.
        - on_time_return_rate_percent is in [0, 100], two decimal places.
        - has_data is False iff window_moves == 0.
        - loss_percentage is in [0, 100] and 0 without completed moves.
    """

    partner_id: UUID
    as_of_date: date
    window_days: int
    active_moves: int
    overdue_moves: int
    on_time_return_rate_percent: Decimal
    has_data: bool
    window_moves: int = 0
    completed_in_window: int = 0
    on_time_count: int = 0
    late_count: int = 0
    quantity_sent: int = 0
    quantity_received: int = 0
    quantity_outstanding: int = 0
    turnaround_days_avg: Decimal | None = None
    turnaround_days_min: int | None = None
    turnaround_days_max: int | None = None
    quantity_rejected: int = 0
    loss_percentage: Decimal = Decimal("0.00")

    @property
    def window_start(self) -> date:
        return self.as_of_date - timedelta(days=self.window_days)

    def to_dict(self) -> dict:
        return {
            "partner_id": str(self.partner_id),
            "as_of_date": self.as_of_date.isoformat(),
            "window_days": self.window_days,
            "active_moves": self.active_moves,
            "overdue_moves": self.overdue_moves,
            "on_time_return_rate_percent": str(self.on_time_return_rate_percent),
            "has_data": self.has_data,
            "window_moves": self.window_moves,
            "completed_in_window": self.completed_in_window,
            "on_time_count": self.on_time_count,
            "late_count": self.late_count,
            "quantity_sent": self.quantity_sent,
            "quantity_received": self.quantity_received,
            "quantity_outstanding": self.quantity_outstanding,
            "turnaround_days_avg": (
                str(self.turnaround_days_avg)
                if self.turnaround_days_avg is not None
                else None
            ),
            "turnaround_days_min": self.turnaround_days_min,
            "turnaround_days_max": self.turnaround_days_max,
            "quantity_rejected": self.quantity_rejected,
            "loss_percentage": str(self.loss_percentage),
        }


def percent(part: int, whole: int) -> Decimal:
    """part / whole as a percentage, two places; 0.00 when whole is 0."""
    if whole == 0:
        return Decimal("0.00")
    return (Decimal(part) * _HUNDRED / Decimal(whole)).quantize(_CENT, rounding=ROUND_HALF_UP)


def average_turnaround(completed: Iterable[ReconciledMoveView]) -> Decimal | None:
    """Mean turnaround in days of complete moves, or None if there are none."""
    turnarounds = [v.turnaround_days for v in completed]
    if not turnarounds:
        return None
    return (Decimal(sum(turnarounds)) / Decimal(len(turnarounds))).quantize(
        _CENT, rounding=ROUND_HALF_UP
    )


def loss_percentage(completed: Iterable[ReconciledMoveView]) -> Decimal:
    """Rejected pieces as a share of pieces sent, over complete moves."""
    completed = list(completed)
    return percent(
        sum(v.quantity_rejected for v in completed),
        sum(v.quantity_sent for v in completed),
    )


def is_on_time(view: ReconciledMoveView) -> bool:
    """Complete, and returned on or before the expected date (if any)."""
    if view.status is not MoveStatus.RECEIVED_FULL:
        return False
    if view.expected_return_date is None:
        return True
    return view.completed_on is not None and view.completed_on <= view.expected_return_date


@traced_engine(
    "partner_performance",
    "1.0",
    fingerprint_fields=("partner_id", "window_days", "as_of_date"),
)
def compute_partner_stats(
    partner_id: UUID,
    views: Iterable[ReconciledMoveView],
    window_days: int,
    as_of_date: date,
) -> PartnerStats:
    """
    Compute performance for one partner.

    ``views`` may contain moves of other partners; they are ignored.
    Overdue is judged against ``as_of_date``, not the date the views were
    reconciled on.
    """
    if window_days < 0:
        raise ValueError(f"window_days cannot be negative, got {window_days}")

    window_start = as_of_date - timedelta(days=window_days)
    moves = [v for v in views if v.partner_id == partner_id and not v.is_voided]

    active = [v for v in moves if v.is_active]
    overdue = [v for v in active if v.overdue_on(as_of_date)]

    in_window = [v for v in moves if window_start <= v.dispatch_date <= as_of_date]
    completed = [v for v in in_window if v.status is MoveStatus.RECEIVED_FULL]
    on_time = [v for v in completed if is_on_time(v)]

    turnarounds = [v.turnaround_days for v in completed]

    return PartnerStats(
        partner_id=partner_id,
        as_of_date=as_of_date,
        window_days=window_days,
        active_moves=len(active),
        overdue_moves=len(overdue),
        on_time_return_rate_percent=percent(len(on_time), len(completed)),
        has_data=bool(in_window),
        window_moves=len(in_window),
        completed_in_window=len(completed),
        on_time_count=len(on_time),
        late_count=len(completed) - len(on_time),
        quantity_sent=sum(v.quantity_sent for v in in_window),
        quantity_received=sum(v.quantity_received for v in in_window),
        quantity_outstanding=sum(v.quantity_outstanding for v in active),
        turnaround_days_avg=average_turnaround(completed),
        turnaround_days_min=min(turnarounds) if turnarounds else None,
        turnaround_days_max=max(turnarounds) if turnarounds else None,
        quantity_rejected=sum(v.quantity_rejected for v in in_window),
        loss_percentage=loss_percentage(completed),
    )


def compute_all_partner_stats(
    partners: Iterable[PartnerRecord],
    views: Iterable[ReconciledMoveView],
    window_days: int,
    as_of_date: date,
) -> dict[UUID, PartnerStats]:
    """Stats for every partner in the directory, keyed by partner id."""
    by_partner: dict[UUID, list[ReconciledMoveView]] = defaultdict(list)
    for view in views:
        by_partner[view.partner_id].append(view)

    result = {
        partner.partner_id: compute_partner_stats(
            partner.partner_id,
            by_partner.get(partner.partner_id, ()),
            window_days,
            as_of_date,
        )
        for partner in partners
    }
    logger.debug(
        "partner_stats_computed",
        extra={"partner_count": len(result), "window_days": window_days},
    )
    return result
