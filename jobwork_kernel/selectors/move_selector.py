"""
Module: jobwork_kernel.selectors.move_selector
Responsibility: Read-only query access to external moves and their receipts.
    Converts ORM models to frozen DTOs for the reconciliation engines.
Architecture position: Kernel > Selectors.  May import from models/, domain/
    and selectors/base.py.

Invariants enforced:
    - Read-only: No mutations performed on any queried data.
    - DTO convention: All public methods return MoveRecord/ReceiptRecord.
    - Receipts are ordered by their per-move sequence so that folding them
      is deterministic.
    - Timestamps come back timezone-aware (UTC) even from backends that drop
      the offset on storage.

Failure modes:
    - Returns None or empty collections when nothing matches.
"""

from collections.abc import Iterable
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from jobwork_kernel.domain.dtos import MoveRecord, ReceiptRecord
from jobwork_kernel.domain.values import MoveStatus, QcOutcome
from jobwork_kernel.models.move import ExternalMove, ExternalReceipt
from jobwork_kernel.selectors.base import BaseSelector


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def move_to_record(move: ExternalMove) -> MoveRecord:
    """Convert ORM ExternalMove to MoveRecord."""
    return MoveRecord(
        move_id=move.id,
        work_order_id=move.work_order_id,
        partner_id=move.partner_id,
        process_type=move.process_type,
        quantity_sent=move.quantity_sent,
        dispatch_date=move.dispatch_date,
        expected_return_date=move.expected_return_date,
        dispatched_at=_as_utc(move.dispatched_at),
        recorded_status=MoveStatus(move.status),
        challan_no=move.challan_no,
        voided_at=_as_utc(move.voided_at),
    )


def receipt_to_record(receipt: ExternalReceipt) -> ReceiptRecord:
    """Convert ORM ExternalReceipt to ReceiptRecord."""
    return ReceiptRecord(
        receipt_id=receipt.id,
        move_id=receipt.move_id,
        quantity_received=receipt.quantity_received,
        received_date=receipt.received_date,
        sequence=receipt.sequence,
        qc_outcome=QcOutcome(receipt.qc_outcome) if receipt.qc_outcome else None,
        remarks=receipt.remarks,
        quantity_rejected=receipt.quantity_rejected or 0,
    )


class MoveSelector(BaseSelector[ExternalMove]):
    """
    Selector for move and receipt queries.

    Contract:
        ``list_moves`` filters compose with AND.  ``receipts_for_moves``
        returns a key for every requested move id, with an empty tuple for
        moves that have no receipts yet.

    Guarantees:
        - Moves are ordered by (dispatch_date, challan_no).
        - Receipts are ordered by sequence.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def get_move(self, move_id: UUID) -> MoveRecord | None:
        move = self.session.get(ExternalMove, move_id)
        return move_to_record(move) if move is not None else None

    def get_by_challan(self, challan_no: str) -> MoveRecord | None:
        move = self.session.execute(
            select(ExternalMove).where(ExternalMove.challan_no == challan_no)
        ).scalar_one_or_none()
        return move_to_record(move) if move is not None else None

    def list_moves(
        self,
        partner_id: UUID | None = None,
        work_order_id: str | None = None,
        dispatched_from: date | None = None,
        dispatched_to: date | None = None,
        process_type: str | None = None,
        include_voided: bool = True,
    ) -> list[MoveRecord]:
        """
        List moves matching the given filters.

        Args:
            partner_id: Only moves sent to this partner.
            work_order_id: Only moves for this work order.
            dispatched_from: Inclusive lower bound on dispatch_date.
            dispatched_to: Inclusive upper bound on dispatch_date.
            process_type: Only moves for this process.
            include_voided: If False, voided moves are left out.
        """
        stmt = select(ExternalMove)
        if partner_id is not None:
            stmt = stmt.where(ExternalMove.partner_id == partner_id)
        if work_order_id is not None:
            stmt = stmt.where(ExternalMove.work_order_id == work_order_id)
        if dispatched_from is not None:
            stmt = stmt.where(ExternalMove.dispatch_date >= dispatched_from)
        if dispatched_to is not None:
            stmt = stmt.where(ExternalMove.dispatch_date <= dispatched_to)
        if process_type is not None:
            stmt = stmt.where(ExternalMove.process_type == process_type)
        if not include_voided:
            stmt = stmt.where(ExternalMove.voided_at.is_(None))
        stmt = stmt.order_by(ExternalMove.dispatch_date, ExternalMove.challan_no)

        return [move_to_record(m) for m in self.session.execute(stmt).scalars()]

    def receipts_for_move(self, move_id: UUID) -> tuple[ReceiptRecord, ...]:
        stmt = (
            select(ExternalReceipt)
            .where(ExternalReceipt.move_id == move_id)
            .order_by(ExternalReceipt.sequence)
        )
        return tuple(receipt_to_record(r) for r in self.session.execute(stmt).scalars())

    def receipts_for_moves(
        self,
        move_ids: Iterable[UUID],
    ) -> dict[UUID, tuple[ReceiptRecord, ...]]:
        ids = list(move_ids)
        grouped: dict[UUID, list[ReceiptRecord]] = {move_id: [] for move_id in ids}
        if not ids:
            return {}

        stmt = (
            select(ExternalReceipt)
            .where(ExternalReceipt.move_id.in_(ids))
            .order_by(ExternalReceipt.move_id, ExternalReceipt.sequence)
        )
        for receipt in self.session.execute(stmt).scalars():
            grouped[receipt.move_id].append(receipt_to_record(receipt))
        return {move_id: tuple(receipts) for move_id, receipts in grouped.items()}

    def load_ledger(
        self,
        partner_id: UUID | None = None,
        work_order_id: str | None = None,
        dispatched_from: date | None = None,
        dispatched_to: date | None = None,
    ) -> list[tuple[MoveRecord, tuple[ReceiptRecord, ...]]]:
        """Moves paired with their receipts, ready for reconciliation."""
        moves = self.list_moves(
            partner_id=partner_id,
            work_order_id=work_order_id,
            dispatched_from=dispatched_from,
            dispatched_to=dispatched_to,
        )
        receipts = self.receipts_for_moves(m.move_id for m in moves)
        return [(m, receipts.get(m.move_id, ())) for m in moves]
