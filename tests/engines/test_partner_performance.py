"""
Tests for partner performance roll-ups.

Covers on-time rate (including the empty window), active and overdue
counts, the trailing window boundary and turnaround statistics.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from jobwork_engines.partner_performance import (
    compute_all_partner_stats,
    compute_partner_stats,
    is_on_time,
)
from jobwork_engines.reconciliation import reconcile
from jobwork_kernel.domain.dtos import MoveRecord, PartnerRecord, ReceiptRecord

AS_OF = date(2024, 3, 1)
PARTNER = uuid4()


def view_for(
    dispatch_date,
    expected=None,
    returned_on=None,
    quantity_sent=10,
    quantity_back=None,
    partner_id=PARTNER,
    voided=False,
    rejected=0,
):
    """Reconciled view of a move, optionally with a single return."""
    move = MoveRecord(
        move_id=uuid4(),
        work_order_id="WO-1",
        partner_id=partner_id,
        process_type="Plating",
        quantity_sent=quantity_sent,
        dispatch_date=dispatch_date,
        expected_return_date=expected,
        voided_at=datetime(2024, 2, 1, tzinfo=timezone.utc) if voided else None,
    )
    receipts = ()
    if returned_on is not None:
        receipts = (
            ReceiptRecord(
                receipt_id=uuid4(),
                move_id=move.move_id,
                quantity_received=quantity_back or quantity_sent,
                received_date=returned_on,
                sequence=1,
                quantity_rejected=rejected,
            ),
        )
    return reconcile(move, receipts, AS_OF)


class TestOnTimeRate:
    def test_scenario_mixed_on_time_and_late(self):
        """Four completed in window: three on time, one late -> 75.00%."""
        views = [
            view_for(date(2024, 2, 1), expected=date(2024, 2, 10), returned_on=date(2024, 2, 9)),
            view_for(date(2024, 2, 1), expected=date(2024, 2, 10), returned_on=date(2024, 2, 10)),
            view_for(date(2024, 2, 5), expected=None, returned_on=date(2024, 2, 20)),
            view_for(date(2024, 2, 5), expected=date(2024, 2, 8), returned_on=date(2024, 2, 12)),
        ]
        stats = compute_partner_stats(PARTNER, views, 30, AS_OF)

        assert stats.on_time_return_rate_percent == Decimal("75.00")
        assert stats.completed_in_window == 4
        assert stats.on_time_count == 3
        assert stats.late_count == 1
        assert stats.has_data is True

    def test_empty_window_reports_zero_without_data(self):
        stats = compute_partner_stats(PARTNER, [], 90, AS_OF)

        assert stats.on_time_return_rate_percent == Decimal("0.00")
        assert stats.has_data is False
        assert stats.window_moves == 0
        assert stats.active_moves == 0

    def test_moves_outside_window_do_not_count(self):
        views = [
            view_for(date(2023, 6, 1), expected=date(2023, 6, 5), returned_on=date(2023, 7, 1)),
        ]
        stats = compute_partner_stats(PARTNER, views, 30, AS_OF)

        assert stats.has_data is False
        assert stats.on_time_return_rate_percent == Decimal("0.00")

    def test_window_start_is_inclusive(self):
        start = AS_OF - timedelta(days=30)
        views = [view_for(start, expected=start, returned_on=start)]

        stats = compute_partner_stats(PARTNER, views, 30, AS_OF)

        assert stats.window_start == start
        assert stats.window_moves == 1
        assert stats.on_time_return_rate_percent == Decimal("100.00")

    def test_outstanding_moves_in_window_leave_rate_alone(self):
        views = [
            view_for(date(2024, 2, 20), expected=date(2024, 2, 25), returned_on=date(2024, 2, 24)),
            view_for(date(2024, 2, 21), expected=date(2024, 2, 26)),
        ]
        stats = compute_partner_stats(PARTNER, views, 30, AS_OF)

        assert stats.window_moves == 2
        assert stats.completed_in_window == 1
        assert stats.on_time_return_rate_percent == Decimal("100.00")

    def test_rate_rounds_half_up(self):
        """One of three on time is 33.33%; two of three is 66.67%."""
        on_time = dict(expected=date(2024, 2, 10), returned_on=date(2024, 2, 9))
        late = dict(expected=date(2024, 2, 10), returned_on=date(2024, 2, 11))
        views = [
            view_for(date(2024, 2, 1), **on_time),
            view_for(date(2024, 2, 1), **on_time),
            view_for(date(2024, 2, 1), **late),
        ]
        stats = compute_partner_stats(PARTNER, views, 30, AS_OF)
        assert stats.on_time_return_rate_percent == Decimal("66.67")

    def test_is_on_time_false_while_outstanding(self):
        assert is_on_time(view_for(date(2024, 2, 20))) is False


class TestWorkload:
    def test_scenario_overdue_count(self):
        """Two active moves, one past its date, one not yet due."""
        views = [
            view_for(date(2024, 2, 20), expected=date(2024, 2, 25)),
            view_for(date(2024, 2, 28), expected=date(2024, 3, 4)),
        ]
        stats = compute_partner_stats(PARTNER, views, 90, AS_OF)

        assert stats.active_moves == 2
        assert stats.overdue_moves == 1
        assert stats.quantity_outstanding == 20

    def test_active_moves_counted_regardless_of_window(self):
        views = [view_for(date(2023, 1, 1), expected=date(2023, 1, 10))]
        stats = compute_partner_stats(PARTNER, views, 30, AS_OF)

        assert stats.active_moves == 1
        assert stats.overdue_moves == 1
        assert stats.window_moves == 0

    def test_voided_moves_ignored(self):
        views = [
            view_for(date(2024, 2, 20), expected=date(2024, 2, 21), voided=True),
        ]
        stats = compute_partner_stats(PARTNER, views, 90, AS_OF)

        assert stats.active_moves == 0
        assert stats.overdue_moves == 0
        assert stats.has_data is False

    def test_other_partners_ignored(self):
        views = [view_for(date(2024, 2, 20), partner_id=uuid4())]
        stats = compute_partner_stats(PARTNER, views, 90, AS_OF)
        assert stats.active_moves == 0

    def test_overdue_judged_against_argument_date(self):
        view = view_for(date(2024, 2, 20), expected=date(2024, 3, 3))
        later = date(2024, 3, 10)

        stats = compute_partner_stats(PARTNER, [view], 90, later)

        assert view.is_overdue is False
        assert stats.overdue_moves == 1

    def test_partial_receipt_counts_as_active(self):
        view = view_for(
            date(2024, 2, 20),
            expected=date(2024, 3, 5),
            returned_on=date(2024, 2, 25),
            quantity_sent=10,
            quantity_back=4,
        )
        stats = compute_partner_stats(PARTNER, [view], 90, AS_OF)

        assert stats.active_moves == 1
        assert stats.quantity_outstanding == 6
        assert stats.quantity_received == 4


class TestTurnaround:
    def test_turnaround_statistics(self):
        views = [
            view_for(date(2024, 2, 1), returned_on=date(2024, 2, 4)),
            view_for(date(2024, 2, 1), returned_on=date(2024, 2, 8)),
        ]
        stats = compute_partner_stats(PARTNER, views, 90, AS_OF)

        assert stats.turnaround_days_min == 3
        assert stats.turnaround_days_max == 7
        assert stats.turnaround_days_avg == Decimal("5.00")

    def test_no_completions_no_turnaround(self):
        stats = compute_partner_stats(PARTNER, [view_for(date(2024, 2, 1))], 90, AS_OF)
        assert stats.turnaround_days_avg is None
        assert stats.turnaround_days_min is None


class TestRejectionLoss:
    def test_loss_over_completed_moves_only(self):
        views = [
            view_for(date(2024, 2, 1), returned_on=date(2024, 2, 4), rejected=1),
            view_for(date(2024, 2, 1), returned_on=date(2024, 2, 5), rejected=2),
            view_for(date(2024, 2, 1), returned_on=date(2024, 2, 5), quantity_back=5, rejected=5),
        ]

        stats = compute_partner_stats(PARTNER, views, 90, AS_OF)

        assert stats.quantity_rejected == 8
        assert stats.loss_percentage == Decimal("15.00")

    def test_loss_rounds_half_up(self):
        views = [
            view_for(date(2024, 2, 1), returned_on=date(2024, 2, 4), quantity_sent=3, rejected=1),
        ]
        assert compute_partner_stats(PARTNER, views, 90, AS_OF).loss_percentage == Decimal("33.33")

    def test_no_completions_no_loss(self):
        views = [view_for(date(2024, 2, 1), returned_on=date(2024, 2, 4), quantity_back=4, rejected=4)]
        stats = compute_partner_stats(PARTNER, views, 90, AS_OF)

        assert stats.loss_percentage == Decimal("0.00")
        assert stats.quantity_rejected == 4


class TestValidation:
    def test_negative_window_rejected(self):
        with pytest.raises(ValueError):
            compute_partner_stats(PARTNER, [], -1, AS_OF)


class TestAllPartners:
    def test_every_partner_gets_stats(self):
        quiet = PartnerRecord(partner_id=uuid4(), name="Quiet", process_types=frozenset({"Buffing"}))
        busy = PartnerRecord(partner_id=PARTNER, name="Busy", process_types=frozenset({"Plating"}))
        views = [view_for(date(2024, 2, 20), expected=date(2024, 2, 22))]

        result = compute_all_partner_stats([quiet, busy], views, 90, AS_OF)

        assert set(result) == {quiet.partner_id, busy.partner_id}
        assert result[quiet.partner_id].has_data is False
        assert result[busy.partner_id].overdue_moves == 1

    def test_to_dict_serializes_decimals_as_strings(self):
        stats = compute_partner_stats(PARTNER, [], 90, AS_OF)
        data = stats.to_dict()

        assert data["on_time_return_rate_percent"] == "0.00"
        assert data["turnaround_days_avg"] is None
        assert data["loss_percentage"] == "0.00"
        assert data["quantity_rejected"] == 0
        assert data["as_of_date"] == "2024-03-01"
