"""
Tests for the per-process floor summary.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from jobwork_engines.process_summary import ProcessSummary, summarize_by_process
from jobwork_engines.reconciliation import reconcile
from jobwork_kernel.domain.dtos import MoveRecord, ReceiptRecord

AS_OF = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def view_for(
    process_type,
    quantity_sent,
    dispatched_at,
    received=0,
    expected=None,
    voided=False,
    received_on=None,
    rejected=0,
):
    move = MoveRecord(
        move_id=uuid4(),
        work_order_id="WO-7",
        partner_id=uuid4(),
        process_type=process_type,
        quantity_sent=quantity_sent,
        dispatch_date=dispatched_at.date(),
        dispatched_at=dispatched_at,
        expected_return_date=expected,
        voided_at=AS_OF if voided else None,
    )
    receipts = ()
    if received:
        receipts = (
            ReceiptRecord(
                receipt_id=uuid4(),
                move_id=move.move_id,
                quantity_received=received,
                received_date=received_on or AS_OF.date(),
                sequence=1,
                quantity_rejected=rejected,
            ),
        )
    return reconcile(move, receipts, AS_OF.date())


class TestSummarizeByProcess:
    def test_scenario_plating_and_buffing(self):
        """Two plating moves (100 and 50 out) and one buffing move (30 out)."""
        views = [
            view_for("Plating", 100, datetime(2024, 3, 1, 2, 0, tzinfo=timezone.utc)),
            view_for("Plating", 80, datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc), received=30),
            view_for("Buffing", 30, datetime(2024, 2, 29, 12, 0, tzinfo=timezone.utc)),
        ]

        summaries = summarize_by_process(views, AS_OF)

        assert list(summaries) == ["Buffing", "Plating"]
        plating = summaries["Plating"]
        assert plating.piece_count_outstanding == 150
        assert plating.active_move_count == 2
        # waits of 10h and 4h
        assert plating.average_wait_hours == Decimal("7.00")
        assert summaries["Buffing"].average_wait_hours == Decimal("24.00")

    def test_voided_moves_skipped(self):
        views = [
            view_for("Plating", 10, datetime(2024, 2, 28, tzinfo=timezone.utc), voided=True),
            view_for(
                "Buffing", 10, datetime(2024, 2, 28, tzinfo=timezone.utc), received=10, voided=True
            ),
        ]
        assert summarize_by_process(views, AS_OF) == {}

    def test_complete_moves_not_on_the_floor(self):
        views = [view_for("Plating", 10, datetime(2024, 2, 28, tzinfo=timezone.utc), received=10)]

        plating = summarize_by_process(views, AS_OF)["Plating"]

        assert plating.active_move_count == 0
        assert plating.piece_count_outstanding == 0
        assert plating.average_wait_hours == Decimal("0.00")
        assert plating.completed_count == 1

    def test_configured_processes_always_present(self):
        summaries = summarize_by_process([], AS_OF, process_types=("Forging", "Plating"))

        assert summaries["Forging"] == ProcessSummary(process_type="Forging")
        assert summaries["Plating"].average_wait_hours == Decimal("0.00")

    def test_overdue_count(self):
        views = [
            view_for("Forging", 5, datetime(2024, 2, 20, tzinfo=timezone.utc), expected=date(2024, 2, 25)),
            view_for("Forging", 5, datetime(2024, 2, 20, tzinfo=timezone.utc), expected=date(2024, 3, 5)),
        ]
        assert summarize_by_process(views, AS_OF)["Forging"].overdue_count == 1

    def test_future_dispatch_waits_zero(self):
        views = [view_for("Plating", 5, datetime(2024, 3, 1, 13, 0, tzinfo=timezone.utc))]
        assert summarize_by_process(views, AS_OF)["Plating"].average_wait_hours == Decimal("0.00")

    def test_pieces_add_up_to_active_outstanding(self):
        views = [
            view_for("Plating", 40, datetime(2024, 2, 27, tzinfo=timezone.utc), received=15),
            view_for("Buffing", 12, datetime(2024, 2, 27, tzinfo=timezone.utc)),
            view_for("Blasting", 9, datetime(2024, 2, 27, tzinfo=timezone.utc), received=9),
        ]
        summaries = summarize_by_process(views, AS_OF)

        total = sum(s.piece_count_outstanding for s in summaries.values())
        assert total == sum(v.quantity_outstanding for v in views if v.is_active)

    def test_to_dict(self):
        views = [view_for("Plating", 3, datetime(2024, 3, 1, 11, 30, tzinfo=timezone.utc))]
        data = summarize_by_process(views, AS_OF)["Plating"].to_dict()
        assert data == {
            "process_type": "Plating",
            "piece_count_outstanding": 3,
            "active_move_count": 1,
            "overdue_count": 0,
            "average_wait_hours": "0.50",
            "completed_count": 0,
            "average_turnaround_days": None,
            "on_time_percent": "0.00",
            "quantity_rejected": 0,
            "loss_percentage": "0.00",
        }


def _day(d):
    return datetime(2024, 2, d, 8, 0, tzinfo=timezone.utc)


class TestProcessPerformance:
    def test_turnaround_on_time_and_loss(self):
        """Three plating moves came back: 4 and 6 days, one of them late."""
        views = [
            view_for(
                "Plating", 100, _day(1), received=100,
                received_on=date(2024, 2, 5), expected=date(2024, 2, 6), rejected=5,
            ),
            view_for(
                "Plating", 100, _day(10), received=100,
                received_on=date(2024, 2, 16), expected=date(2024, 2, 14),
            ),
            view_for("Plating", 50, _day(20), received=20, rejected=20),
        ]

        plating = summarize_by_process(views, AS_OF)["Plating"]

        assert plating.completed_count == 2
        assert plating.average_turnaround_days == Decimal("5.00")
        assert plating.on_time_percent == Decimal("50.00")
        # rejections on open moves wait until the move closes
        assert plating.quantity_rejected == 5
        assert plating.loss_percentage == Decimal("2.50")
        assert plating.active_move_count == 1

    def test_no_expected_date_counts_as_on_time(self):
        views = [view_for("Buffing", 10, _day(25), received=10, received_on=date(2024, 2, 28))]
        assert summarize_by_process(views, AS_OF)["Buffing"].on_time_percent == Decimal("100.00")

    def test_window_limits_performance_not_floor(self):
        views = [
            view_for("Forging", 10, _day(1), received=10, received_on=date(2024, 2, 3)),
            view_for("Forging", 10, _day(25), received=10, received_on=date(2024, 2, 27)),
            view_for("Forging", 7, _day(1)),
        ]

        forging = summarize_by_process(views, AS_OF, window_days=7)["Forging"]

        assert forging.completed_count == 1
        assert forging.average_turnaround_days == Decimal("2.00")
        assert forging.active_move_count == 1
        assert forging.piece_count_outstanding == 7

    def test_negative_window_rejected(self):
        with pytest.raises(ValueError):
            summarize_by_process([], AS_OF, window_days=-1)
