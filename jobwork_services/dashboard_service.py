"""
ExternalDashboardService -- recompute-on-demand views for the floor.

Responsibility:
    Assemble everything the external-processing dashboard shows from a
    single read of the ledger: reconciled moves, per-process floor status,
    per-partner performance and return alerts.  A change notification for
    one of the ledger's tables triggers a fresh snapshot; nothing is cached
    between calls.

Architecture position:
    Services -- read-side orchestration over jobwork_kernel selectors and
    jobwork_engines.  Holds no state beyond its collaborators.

Invariants enforced:
    - Every figure in a snapshot is computed against the same as-of moment.
    - Voided moves appear in ``views`` (flagged) and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from jobwork_config import EngineConfig, get_active_config
from jobwork_engines.partner_performance import PartnerStats, compute_all_partner_stats
from jobwork_engines.process_summary import ProcessSummary, summarize_by_process
from jobwork_engines.reconciliation import ReconciledMoveView, reconcile_all
from jobwork_engines.return_alerts import ReturnAlert, find_return_alerts
from jobwork_kernel.domain.clock import Clock, SystemClock
from jobwork_kernel.domain.dtos import ChangeNotification
from jobwork_kernel.logging_config import get_logger
from jobwork_kernel.models.move import ExternalMove, ExternalReceipt
from jobwork_kernel.models.partner import Partner
from jobwork_kernel.selectors.move_selector import MoveSelector
from jobwork_kernel.selectors.partner_selector import PartnerSelector

logger = get_logger("services.dashboard")

SOURCE_TABLES: frozenset[str] = frozenset(
    {
        Partner.__tablename__,
        ExternalMove.__tablename__,
        ExternalReceipt.__tablename__,
    }
)


@dataclass(frozen=True)
class DashboardSnapshot:
    """Point-in-time dashboard data.  Plain data, no behavior."""

    as_of: datetime
    views: tuple[ReconciledMoveView, ...]
    process_summaries: dict[str, ProcessSummary]
    partner_stats: dict[UUID, PartnerStats]
    alerts: tuple[ReturnAlert, ...]

    @property
    def active_views(self) -> tuple[ReconciledMoveView, ...]:
        return tuple(v for v in self.views if v.is_active)

    @property
    def total_pieces_outstanding(self) -> int:
        return sum(v.quantity_outstanding for v in self.active_views)

    def to_dict(self) -> dict:
        return {
            "as_of": self.as_of.isoformat(),
            "views": [v.to_dict() for v in self.views],
            "process_summaries": {
                k: s.to_dict() for k, s in self.process_summaries.items()
            },
            "partner_stats": {
                str(k): s.to_dict() for k, s in self.partner_stats.items()
            },
            "alerts": [a.to_dict() for a in self.alerts],
            "total_pieces_outstanding": self.total_pieces_outstanding,
        }


class ExternalDashboardService:
    """
    Builds dashboard snapshots.

    Usage:
        service = ExternalDashboardService(session, clock)
        snapshot = service.snapshot()

        # Realtime transport callback
        refreshed = service.on_change(ChangeNotification(table="external_receipts"))
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._moves = MoveSelector(session)
        self._partners = PartnerSelector(session)

    def snapshot(
        self,
        partner_id: UUID | None = None,
        work_order_id: str | None = None,
    ) -> DashboardSnapshot:
        """
        Recompute the dashboard from the ledger.

        Args:
            partner_id: Restrict to one partner's moves and stats.
            work_order_id: Restrict to one work order's moves.  Partner
                stats are then computed over that work order only.
        """
        as_of = self._clock.now()
        as_of_date = as_of.date()

        ledger = self._moves.load_ledger(
            partner_id=partner_id,
            work_order_id=work_order_id,
        )
        views = reconcile_all(ledger, as_of_date)

        partners = self._partners.list_all()
        if partner_id is not None:
            partners = [p for p in partners if p.partner_id == partner_id]

        snapshot = DashboardSnapshot(
            as_of=as_of,
            views=tuple(views),
            process_summaries=summarize_by_process(
                views,
                as_of,
                process_types=self._config.process_codes,
                window_days=self._config.performance_window_days,
            ),
            partner_stats=compute_all_partner_stats(
                partners, views, self._config.performance_window_days, as_of_date
            ),
            alerts=find_return_alerts(views, as_of_date, self._config.due_soon_days),
        )

        logger.info(
            "dashboard_snapshot_built",
            extra={
                "move_count": len(views),
                "active_move_count": len(snapshot.active_views),
                "alert_count": len(snapshot.alerts),
                "partner_count": len(partners),
            },
        )
        return snapshot

    def on_change(
        self,
        notification: ChangeNotification,
        partner_id: UUID | None = None,
        work_order_id: str | None = None,
    ) -> DashboardSnapshot | None:
        """
        Recompute in response to a row-change notification.

        Returns None when the changed table does not feed the dashboard.
        """
        if notification.table not in SOURCE_TABLES:
            logger.debug(
                "change_ignored",
                extra={"table": notification.table, "operation": notification.operation},
            )
            return None

        logger.info(
            "dashboard_recompute",
            extra={
                "table": notification.table,
                "operation": notification.operation,
                "record_id": notification.record_id,
            },
        )
        return self.snapshot(partner_id=partner_id, work_order_id=work_order_id)
