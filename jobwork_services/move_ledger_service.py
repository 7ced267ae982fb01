"""
MoveLedgerService -- the validation boundary for outbound dispatches.

Responsibility:
    Accept new moves (one batch of pieces sent to one partner for one
    process), allocate their challan numbers and void moves that were
    dispatched in error.  Nothing else creates or cancels a move.

Architecture position:
    Services -- orchestration over jobwork_kernel (models, selectors,
    challan sequences) and jobwork_engines (reconciliation).  Reads its
    tuning from jobwork_config.

Invariants enforced:
    - A move enters the ledger only with a positive quantity, a process the
      partner offers, an active partner and a return date not before the
      dispatch date.
    - quantity_sent is never edited.  A wrong dispatch is voided and
      re-created, which keeps quantity conservation provable.
    - A fully received move cannot be voided; a voided move stays voided.

Failure modes:
    - Validation problems come back as a MoveResult with a non-success
      status; they are never raised.
    - Unexpected errors roll back (auto_commit=True) and propagate.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from jobwork_config import EngineConfig, get_active_config
from jobwork_engines.reconciliation import ReconciledMoveView, reconcile
from jobwork_kernel.domain.clock import Clock, SystemClock
from jobwork_kernel.domain.dtos import MoveRecord
from jobwork_kernel.domain.values import MoveStatus
from jobwork_kernel.exceptions import (
    InvalidProcessTypeError,
    InvalidQuantityError,
    InvalidReturnDateError,
    JobworkError,
    MoveAlreadyCompleteError,
    MoveError,
    MoveNotFoundError,
    MoveVoidedError,
    PartnerError,
    PartnerInactiveError,
    PartnerNotFoundError,
    RemarksTooLongError,
    ValidationError,
)
from jobwork_kernel.logging_config import LogContext, get_logger
from jobwork_kernel.models.move import ExternalMove
from jobwork_kernel.models.partner import Partner
from jobwork_kernel.selectors.move_selector import MoveSelector, move_to_record
from jobwork_kernel.services.challan_service import ChallanSequenceService
from jobwork_kernel.services.move_locks import MoveLockRegistry, default_move_locks

logger = get_logger("services.move_ledger")


class MoveResultStatus(str, Enum):
    """Outcome of a move ledger operation.  Failure values mirror error codes."""

    CREATED = "created"
    VOIDED = "voided"
    INVALID_PROCESS_TYPE = "invalid_process_type"
    INVALID_QUANTITY = "invalid_quantity"
    INVALID_RETURN_DATE = "invalid_return_date"
    REMARKS_TOO_LONG = "remarks_too_long"
    PARTNER_NOT_FOUND = "partner_not_found"
    PARTNER_INACTIVE = "partner_inactive"
    MOVE_NOT_FOUND = "move_not_found"
    MOVE_VOIDED = "move_voided"
    MOVE_ALREADY_COMPLETE = "move_already_complete"


@dataclass(frozen=True)
class MoveResult:
    """Result of create_move / void_move."""

    status: MoveResultStatus
    move: MoveRecord | None = None
    view: ReconciledMoveView | None = None
    error: JobworkError | None = None

    @property
    def is_success(self) -> bool:
        return self.status in (MoveResultStatus.CREATED, MoveResultStatus.VOIDED)

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    @classmethod
    def rejected(cls, error: JobworkError) -> MoveResult:
        return cls(status=MoveResultStatus(error.code.lower()), error=error)


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class MoveLedgerService:
    """
    Creates and voids external moves.

    Contract:
        ``create_move`` and ``void_move`` return a MoveResult.  On success
        the change is committed (when auto_commit=True) and the result
        carries the move and its reconciled view.  On rejection nothing is
        written.

    Non-goals:
        - Does NOT record receipts (see ReceiptRecorder).
        - Does NOT edit quantity_sent, ever.
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
        self._challans = ChallanSequenceService(session)
        self._selector = MoveSelector(session)

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def create_move(
        self,
        work_order_id: str,
        partner_id: UUID,
        process_type: str,
        quantity_sent: int,
        dispatch_date: date,
        actor_id: UUID,
        expected_return_date: date | None = None,
        track_return: bool = True,
        remarks: str | None = None,
    ) -> MoveResult:
        """
        Record a dispatch of ``quantity_sent`` pieces to a partner.

        When ``expected_return_date`` is None and ``track_return`` is True,
        the expected date defaults to dispatch_date + the partner's lead
        time (if enabled in config).  ``track_return=False`` stores no
        expected date, so the move is never overdue.

        Returns:
            MoveResult with status CREATED, or a rejection status.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            partner_id=str(partner_id),
            work_order_id=work_order_id,
        ):
            t0 = time.monotonic()
            try:
                result = self._do_create(
                    work_order_id=work_order_id,
                    partner_id=partner_id,
                    process_type=process_type,
                    quantity_sent=quantity_sent,
                    dispatch_date=dispatch_date,
                    actor_id=actor_id,
                    expected_return_date=expected_return_date,
                    track_return=track_return,
                    remarks=remarks,
                )
                self._finish(result)
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    "move_create_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            if result.is_success:
                logger.info(
                    "move_created",
                    extra={
                        "move_id": str(result.move.move_id),
                        "challan_no": result.move.challan_no,
                        "process_type": process_type,
                        "quantity_sent": quantity_sent,
                        "expected_return_date": result.move.expected_return_date,
                        "duration_ms": duration_ms,
                    },
                )
            else:
                logger.warning(
                    "move_rejected",
                    extra={
                        "status": result.status.value,
                        "reason": result.message,
                        "duration_ms": duration_ms,
                    },
                )
            return result

    def _do_create(
        self,
        work_order_id: str,
        partner_id: UUID,
        process_type: str,
        quantity_sent: int,
        dispatch_date: date,
        actor_id: UUID,
        expected_return_date: date | None,
        track_return: bool,
        remarks: str | None,
    ) -> MoveResult:
        try:
            partner = self._validate_new_move(
                partner_id, process_type, quantity_sent, dispatch_date,
                expected_return_date, remarks,
            )
        except (ValidationError, PartnerError) as exc:
            return MoveResult.rejected(exc)

        if not track_return:
            expected_return_date = None
        elif expected_return_date is None and self._config.default_expected_from_lead_time:
            expected_return_date = dispatch_date + timedelta(days=partner.lead_time_days)

        challan_no = self._challans.next_challan_no(
            self._config.challan_prefix(process_type), dispatch_date
        )

        move = ExternalMove(
            work_order_id=work_order_id,
            partner_id=partner.id,
            process_type=process_type,
            quantity_sent=quantity_sent,
            dispatch_date=dispatch_date,
            dispatched_at=self._dispatch_moment(dispatch_date),
            expected_return_date=expected_return_date,
            status=MoveStatus.SENT.value,
            challan_no=challan_no,
            remarks=remarks,
            created_by_id=actor_id,
        )
        self._session.add(move)
        self._session.flush()

        record = move_to_record(move)
        view = reconcile(record, (), self._clock.today())
        return MoveResult(status=MoveResultStatus.CREATED, move=record, view=view)

    def _dispatch_moment(self, dispatch_date: date) -> datetime:
        """Now for same-day entry; midnight UTC of the day for back-dated entry."""
        now = self._clock.now()
        if now.date() == dispatch_date:
            return now
        return datetime.combine(dispatch_date, datetime.min.time(), tzinfo=timezone.utc)

    def _validate_new_move(
        self,
        partner_id: UUID,
        process_type: str,
        quantity_sent: int,
        dispatch_date: date,
        expected_return_date: date | None,
        remarks: str | None,
    ) -> Partner:
        partner = self._session.get(Partner, partner_id)
        if partner is None:
            raise PartnerNotFoundError(str(partner_id))
        if not partner.is_active:
            raise PartnerInactiveError(str(partner_id))
        if process_type not in (partner.process_types or ()):
            raise InvalidProcessTypeError(
                partner_id=str(partner_id),
                process_type=process_type,
                supported=tuple(sorted(partner.process_types or ())),
            )
        if not _is_positive_int(quantity_sent):
            raise InvalidQuantityError(quantity_sent, field="quantity_sent")
        if expected_return_date is not None and expected_return_date < dispatch_date:
            raise InvalidReturnDateError(
                dispatch_date=dispatch_date.isoformat(),
                expected_return_date=expected_return_date.isoformat(),
            )
        if remarks is not None and len(remarks) > self._config.max_remarks_length:
            raise RemarksTooLongError(len(remarks), self._config.max_remarks_length)
        return partner

    # ------------------------------------------------------------------
    # void
    # ------------------------------------------------------------------

    def void_move(self, move_id: UUID, reason: str, actor_id: UUID) -> MoveResult:
        """
        Cancel a dispatch that should not have been recorded.

        The move row is kept, marked with voided_at and the reason.  It no
        longer counts in any aggregate and accepts no receipts.  Partially
        received moves may be voided; fully received ones may not.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            move_id=str(move_id),
        ):
            with self._locks.hold(move_id):
                try:
                    result = self._do_void(move_id, reason, actor_id)
                    self._finish(result)
                except Exception:
                    if self._auto_commit:
                        self._session.rollback()
                    logger.error("move_void_failed", exc_info=True)
                    raise

            if result.is_success:
                logger.info("move_voided", extra={"void_reason": reason})
            else:
                logger.warning(
                    "move_void_rejected",
                    extra={"status": result.status.value, "reason": result.message},
                )
            return result

    def _do_void(self, move_id: UUID, reason: str, actor_id: UUID) -> MoveResult:
        move = self._session.execute(
            select(ExternalMove)
            .where(ExternalMove.id == move_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        try:
            if move is None:
                raise MoveNotFoundError(str(move_id))
            if move.is_voided:
                raise MoveVoidedError(str(move_id))
            record = move_to_record(move)
            view = reconcile(
                record, self._selector.receipts_for_move(move_id), self._clock.today()
            )
            if view.status is MoveStatus.RECEIVED_FULL:
                raise MoveAlreadyCompleteError(str(move_id))
        except MoveError as exc:
            return MoveResult.rejected(exc)

        move.voided_at = self._clock.now()
        move.void_reason = reason
        move.updated_by_id = actor_id
        self._session.flush()

        record = move_to_record(move)
        view = reconcile(
            record, self._selector.receipts_for_move(move_id), self._clock.today()
        )
        return MoveResult(status=MoveResultStatus.VOIDED, move=record, view=view)

    def _finish(self, result: MoveResult) -> None:
        if not self._auto_commit:
            return
        if result.is_success:
            self._session.commit()
        else:
            self._session.rollback()
