"""
Module: jobwork_engines.return_alerts
Responsibility:
    Pick out the moves a dispatch coordinator should chase: those already
    past their expected return date and those due back within a few days.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Delivery of the alerts
    (mail, push, dashboard banner) belongs to the caller.

Invariants enforced:
    - Only active moves with an expected return date are considered.
    - OVERDUE iff expected_return_date < as_of_date; DUE_SOON iff
      as_of_date <= expected_return_date <= as_of_date + due_soon_days.
    - Ordering is deterministic: most overdue first, then challan number.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from uuid import UUID

from jobwork_engines.reconciliation import ReconciledMoveView
from jobwork_engines.tracer import traced_engine


class AlertKind(str, Enum):
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"


@dataclass(frozen=True)
class ReturnAlert:
    """
    One move needing follow-up.

    ``days_delta`` is as_of_date - expected_return_date: positive means
    that many days late, zero or negative means due in that many days.
    """

    move_id: UUID
    challan_no: str | None
    partner_id: UUID
    work_order_id: str
    process_type: str
    expected_return_date: date
    quantity_outstanding: int
    kind: AlertKind
    days_delta: int

    def to_dict(self) -> dict:
        return {
            "move_id": str(self.move_id),
            "challan_no": self.challan_no,
            "partner_id": str(self.partner_id),
            "work_order_id": self.work_order_id,
            "process_type": self.process_type,
            "expected_return_date": self.expected_return_date.isoformat(),
            "quantity_outstanding": self.quantity_outstanding,
            "kind": self.kind.value,
            "days_delta": self.days_delta,
        }


@traced_engine("return_alerts", "1.0", fingerprint_fields=("as_of_date", "due_soon_days"))
def find_return_alerts(
    views: Iterable[ReconciledMoveView],
    as_of_date: date,
    due_soon_days: int = 2,
) -> tuple[ReturnAlert, ...]:
    """Overdue and due-soon alerts, most overdue first."""
    if due_soon_days < 0:
        raise ValueError(f"due_soon_days cannot be negative, got {due_soon_days}")

    horizon = as_of_date + timedelta(days=due_soon_days)
    alerts = []
    for view in views:
        expected = view.expected_return_date
        if not view.is_active or expected is None or expected > horizon:
            continue
        alerts.append(
            ReturnAlert(
                move_id=view.move_id,
                challan_no=view.challan_no,
                partner_id=view.partner_id,
                work_order_id=view.work_order_id,
                process_type=view.process_type,
                expected_return_date=expected,
                quantity_outstanding=view.quantity_outstanding,
                kind=AlertKind.OVERDUE if expected < as_of_date else AlertKind.DUE_SOON,
                days_delta=(as_of_date - expected).days,
            )
        )

    alerts.sort(key=lambda a: (-a.days_delta, a.challan_no or "", str(a.move_id)))
    return tuple(alerts)
