"""
ReceiptRecorder -- atomic check-and-append of return events.

Responsibility:
    Record a physical return of pieces against a move.  This is the only
    write path for receipts and the only place a move's status is
    materialized.

Architecture position:
    Services -- orchestration over jobwork_kernel (models, selectors, move
    locks) and jobwork_engines (reconciliation).

Invariants enforced:
    - Conservation: the receipt is rejected if cumulative received would
      exceed quantity sent.  A rejected receipt leaves no trace.
    - Per-move serialization: the move's lock in the MoveLockRegistry is
      held from the first read until commit, and the move row is read with
      ``SELECT ... FOR UPDATE``.  Receipts carry a per-move sequence with a
      unique constraint, so a writer that slipped past both would still
      fail at INSERT instead of over-receiving.
    - Monotonic status: the status after the append is compared with the
      status before it.  A regression raises InvariantViolationError,
      logged CRITICAL; the transaction is rolled back.

Failure modes:
    - Validation problems (OVER_RECEIPT, QC_REQUIRED, INVALID_QC_OUTCOME,
      INVALID_QUANTITY, INVALID_REJECTED_QUANTITY, MOVE_NOT_FOUND,
      MOVE_VOIDED, REMARKS_TOO_LONG) come back as a ReceiptResult; they
      are never raised.
    - InvariantViolationError always propagates.

Serialization scope:
    With auto_commit=False the lock is released when record_receipt
    returns, before the caller commits.  Cross-writer safety then rests on
    the row lock and the sequence constraint only.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from jobwork_config import EngineConfig, get_active_config
from jobwork_engines.reconciliation import ReconciledMoveView, reconcile
from jobwork_kernel.domain.clock import Clock, SystemClock
from jobwork_kernel.domain.dtos import ReceiptRecord
from jobwork_kernel.domain.values import MoveStatus, QcOutcome
from jobwork_kernel.exceptions import (
    InvalidQcOutcomeError,
    InvalidQuantityError,
    InvalidRejectedQuantityError,
    InvariantViolationError,
    JobworkError,
    MoveError,
    MoveNotFoundError,
    MoveVoidedError,
    OverReceiptError,
    QcRequiredError,
    RemarksTooLongError,
    ValidationError,
)
from jobwork_kernel.invariants import LedgerInvariant
from jobwork_kernel.logging_config import LogContext, get_logger
from jobwork_kernel.models.move import ExternalMove, ExternalReceipt
from jobwork_kernel.models.partner import Partner
from jobwork_kernel.selectors.move_selector import (
    MoveSelector,
    move_to_record,
    receipt_to_record,
)
from jobwork_kernel.services.move_locks import MoveLockRegistry, default_move_locks

logger = get_logger("services.receipt")


class ReceiptResultStatus(str, Enum):
    """Outcome of record_receipt.  Failure values mirror error codes."""

    RECORDED = "recorded"
    OVER_RECEIPT = "over_receipt"
    QC_REQUIRED = "qc_required"
    INVALID_QC_OUTCOME = "invalid_qc_outcome"
    INVALID_QUANTITY = "invalid_quantity"
    INVALID_REJECTED_QUANTITY = "invalid_rejected_quantity"
    REMARKS_TOO_LONG = "remarks_too_long"
    MOVE_NOT_FOUND = "move_not_found"
    MOVE_VOIDED = "move_voided"


@dataclass(frozen=True)
class ReceiptResult:
    """
    Result of record_receipt.

    On success ``receipt`` is the stored record, ``view`` the move's new
    reconciled state and ``previous_status`` its status before the receipt.
    On rejection ``view`` is the unchanged state when the move exists.
    """

    status: ReceiptResultStatus
    receipt: ReceiptRecord | None = None
    view: ReconciledMoveView | None = None
    previous_status: MoveStatus | None = None
    error: JobworkError | None = None

    @property
    def is_success(self) -> bool:
        return self.status is ReceiptResultStatus.RECORDED

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    @classmethod
    def rejected(
        cls,
        error: JobworkError,
        view: ReconciledMoveView | None = None,
    ) -> ReceiptResult:
        return cls(
            status=ReceiptResultStatus(error.code.lower()),
            view=view,
            error=error,
        )


class ReceiptRecorder:
    """
    Records receipts against moves, one move at a time.

    Contract:
        ``record_receipt`` either appends the receipt, materializes the
        new status and commits (auto_commit=True), or writes nothing.

    Guarantees:
        - Two recorders sharing a MoveLockRegistry never interleave on the
          same move.  Recorders on different moves never wait on each other.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        move_locks: MoveLockRegistry | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._locks = move_locks if move_locks is not None else default_move_locks()
        self._auto_commit = auto_commit
        self._selector = MoveSelector(session)

    def record_receipt(
        self,
        move_id: UUID,
        quantity_received: int,
        received_date: date,
        actor_id: UUID,
        qc_outcome: QcOutcome | str | None = None,
        remarks: str | None = None,
        quantity_rejected: int = 0,
    ) -> ReceiptResult:
        """
        Record a return of ``quantity_received`` pieces against a move.

        Args:
            move_id: Move the pieces came back from.
            quantity_received: Pieces in this return, > 0.
            received_date: Day the pieces arrived.
            actor_id: UUID of the user recording the return.
            qc_outcome: pass / fail / pending.  Mandatory when the partner
                requires return QC.
            remarks: Free text, bounded by config.max_remarks_length.
            quantity_rejected: Pieces of this return that failed inspection,
                0 <= quantity_rejected <= quantity_received.  They still
                count as received.

        Raises:
            InvariantViolationError: The ledger is inconsistent.  Fatal.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            move_id=str(move_id),
        ):
            t0 = time.monotonic()
            with self._locks.hold(move_id):
                try:
                    result = self._do_record(
                        move_id, quantity_received, received_date, actor_id,
                        qc_outcome, remarks, quantity_rejected,
                    )
                    if self._auto_commit:
                        if result.is_success:
                            self._session.commit()
                        else:
                            self._session.rollback()
                except InvariantViolationError:
                    if self._auto_commit:
                        self._session.rollback()
                    logger.critical("receipt_invariant_violation", exc_info=True)
                    raise
                except Exception:
                    if self._auto_commit:
                        self._session.rollback()
                    logger.error("receipt_failed", exc_info=True)
                    raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            if result.is_success:
                logger.info(
                    "receipt_recorded",
                    extra={
                        "receipt_id": str(result.receipt.receipt_id),
                        "sequence": result.receipt.sequence,
                        "quantity_received": quantity_received,
                        "quantity_rejected": quantity_rejected,
                        "previous_status": result.previous_status.value,
                        "new_status": result.view.status.value,
                        "quantity_outstanding": result.view.quantity_outstanding,
                        "duration_ms": duration_ms,
                    },
                )
            else:
                logger.warning(
                    "receipt_rejected",
                    extra={
                        "status": result.status.value,
                        "reason": result.message,
                        "quantity_attempted": quantity_received,
                        "duration_ms": duration_ms,
                    },
                )
            return result

    def _do_record(
        self,
        move_id: UUID,
        quantity_received: int,
        received_date: date,
        actor_id: UUID,
        qc_outcome: QcOutcome | str | None,
        remarks: str | None,
        quantity_rejected: int,
    ) -> ReceiptResult:
        as_of = self._clock.today()

        move = self._session.execute(
            select(ExternalMove)
            .where(ExternalMove.id == move_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if move is None:
            return ReceiptResult.rejected(MoveNotFoundError(str(move_id)))

        record = move_to_record(move)
        existing = self._selector.receipts_for_move(move_id)
        before = reconcile(record, existing, as_of)

        try:
            if move.is_voided:
                raise MoveVoidedError(str(move_id))
            outcome = self._validate(
                move, before, quantity_received, quantity_rejected, qc_outcome, remarks
            )
        except (ValidationError, MoveError) as exc:
            return ReceiptResult.rejected(exc, view=before)

        receipt = ExternalReceipt(
            move_id=move.id,
            sequence=(existing[-1].sequence + 1) if existing else 1,
            quantity_received=quantity_received,
            quantity_rejected=quantity_rejected,
            received_date=received_date,
            qc_outcome=outcome.value if outcome is not None else None,
            remarks=remarks,
            created_by_id=actor_id,
        )
        self._session.add(receipt)
        self._session.flush()

        stored = receipt_to_record(receipt)
        after = reconcile(record, existing + (stored,), as_of)

        if after.status.rank < before.status.rank:
            logger.critical(
                "invariant_violation",
                extra={
                    "invariant": LedgerInvariant.STATUS_MONOTONICITY.value,
                    "previous_status": before.status.value,
                    "new_status": after.status.value,
                },
            )
            raise InvariantViolationError(
                invariant=LedgerInvariant.STATUS_MONOTONICITY.value,
                move_id=str(move_id),
                detail=f"status {before.status.value} -> {after.status.value}",
            )

        if move.status != after.status.value:
            move.status = after.status.value
            move.updated_by_id = actor_id
            self._session.flush()

        return ReceiptResult(
            status=ReceiptResultStatus.RECORDED,
            receipt=stored,
            view=after,
            previous_status=before.status,
        )

    def _validate(
        self,
        move: ExternalMove,
        before: ReconciledMoveView,
        quantity_received: int,
        quantity_rejected: int,
        qc_outcome: QcOutcome | str | None,
        remarks: str | None,
    ) -> QcOutcome | None:
        """Raise the first validation problem, or return the parsed QC outcome."""
        if (
            not isinstance(quantity_received, int)
            or isinstance(quantity_received, bool)
            or quantity_received <= 0
        ):
            raise InvalidQuantityError(quantity_received, field="quantity_received")

        if (
            not isinstance(quantity_rejected, int)
            or isinstance(quantity_rejected, bool)
            or not 0 <= quantity_rejected <= quantity_received
        ):
            raise InvalidRejectedQuantityError(quantity_rejected, quantity_received)

        if before.quantity_received + quantity_received > move.quantity_sent:
            raise OverReceiptError(
                move_id=str(move.id),
                quantity_sent=move.quantity_sent,
                quantity_received=before.quantity_received,
                quantity_attempted=quantity_received,
            )

        try:
            outcome = QcOutcome(qc_outcome) if qc_outcome is not None else None
        except ValueError:
            raise InvalidQcOutcomeError(
                qc_outcome, tuple(o.value for o in QcOutcome)
            ) from None

        partner = self._session.get(Partner, move.partner_id)
        if partner is not None and partner.requires_return_qc and outcome is None:
            raise QcRequiredError(move_id=str(move.id), partner_id=str(move.partner_id))

        if remarks is not None and len(remarks) > self._config.max_remarks_length:
            raise RemarksTooLongError(len(remarks), self._config.max_remarks_length)

        return outcome
