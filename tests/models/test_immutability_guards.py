"""
ORM immutability listeners on moves and receipts.

Receipts are append-only; a move's quantity is frozen once pieces have come
back, its status never steps backward and a void cannot be undone.
"""

import pytest

from jobwork_kernel.domain.values import MoveStatus
from jobwork_kernel.exceptions import (
    ImmutabilityViolationError,
    InvariantViolationError,
    QuantityLockedError,
    ReceiptImmutableError,
)
from jobwork_kernel.models.move import ExternalMove, ExternalReceipt
from tests.conftest import TEST_TODAY


@pytest.fixture
def received_move(create_move, receipt_recorder, actor_id):
    """Move of 10 with 4 pieces back."""
    move = create_move(quantity_sent=10)
    result = receipt_recorder.record_receipt(move.move_id, 4, TEST_TODAY, actor_id)
    assert result.is_success
    return move, result.receipt


class TestReceiptImmutability:
    def test_update_blocked(self, session, received_move):
        _, receipt = received_move
        row = session.get(ExternalReceipt, receipt.receipt_id)

        row.quantity_received = 5
        with pytest.raises(ReceiptImmutableError) as exc_info:
            session.flush()

        assert exc_info.value.operation == "UPDATE"

    def test_delete_blocked(self, session, received_move):
        _, receipt = received_move
        session.delete(session.get(ExternalReceipt, receipt.receipt_id))

        with pytest.raises(ReceiptImmutableError) as exc_info:
            session.flush()

        assert exc_info.value.operation == "DELETE"

    def test_blocked_update_logged(self, session, received_move, captured_logs):
        _, receipt = received_move
        session.get(ExternalReceipt, receipt.receipt_id).remarks = "edited"

        with pytest.raises(ReceiptImmutableError):
            session.flush()

        assert any(r["message"] == "immutability_violation_blocked" for r in captured_logs())


class TestMoveGuards:
    def test_quantity_locked_once_received(self, session, received_move):
        move, _ = received_move
        row = session.get(ExternalMove, move.move_id)

        row.quantity_sent = 20
        with pytest.raises(QuantityLockedError) as exc_info:
            session.flush()

        assert exc_info.value.old_quantity == 10
        assert exc_info.value.new_quantity == 20

    def test_quantity_editable_before_any_receipt(self, session, create_move):
        move = create_move(quantity_sent=10)
        row = session.get(ExternalMove, move.move_id)

        row.quantity_sent = 12
        session.flush()

        assert row.quantity_sent == 12

    def test_status_regression_blocked(self, session, received_move):
        move, _ = received_move
        row = session.get(ExternalMove, move.move_id)
        assert row.status == MoveStatus.PARTIALLY_RECEIVED.value

        row.status = MoveStatus.SENT.value
        with pytest.raises(InvariantViolationError):
            session.flush()

    def test_void_cannot_be_undone(self, session, move_ledger, create_move, actor_id):
        move = create_move()
        move_ledger.void_move(move.move_id, "duplicate", actor_id)
        row = session.get(ExternalMove, move.move_id)

        row.voided_at = None
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_blocked(self, session, create_move):
        move = create_move()
        session.delete(session.get(ExternalMove, move.move_id))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
