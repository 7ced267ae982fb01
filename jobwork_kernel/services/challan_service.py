"""
ChallanSequenceService -- dispatch document numbers via locked counter rows.

Responsibility:
    Allocates the challan number printed on the delivery challan that
    travels with a dispatch: ``{PREFIX}-{YYYYMMDD}-{NNNN}``.  The prefix
    identifies the process, the date is the dispatch date and the suffix
    is a per-(prefix, day) counter.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by MoveLedgerService when a move is created.

Invariants enforced:
    - Uniqueness: the counter row for a (prefix, day) is read with
      ``SELECT ... FOR UPDATE`` and incremented in place.  The
      aggregate-max-plus-one pattern is never used.
    - Transactional: the increment is only visible after the caller's
      transaction commits.  Rollback returns the number.

Failure modes:
    - IntegrityError: Concurrent counter creation race (handled via
      savepoint rollback and retry).
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jobwork_kernel.logging_config import get_logger
from jobwork_kernel.models.challan_counter import ChallanCounter

logger = get_logger("services.challan")

FALLBACK_PREFIX = "EXT"


def format_challan_no(prefix: str, dispatch_date: date, value: int) -> str:
    """``PL``, 2024-01-15, 7 -> ``PL-20240115-0007``."""
    return f"{prefix}-{dispatch_date:%Y%m%d}-{value:04d}"


class ChallanSequenceService:
    """
    Service for allocating challan numbers.

    Contract:
        ``next_challan_no(prefix, dispatch_date)`` returns a challan number
        not previously returned for that prefix and day.  Numbers run from
        0001 each day; a day with more than 9999 dispatches for one prefix
        simply widens the suffix.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        challan_no = ChallanSequenceService(session).next_challan_no(
            "PL", date(2024, 1, 15),
        )
    """

    def __init__(self, session: Session):
        self._session = session

    def next_challan_no(self, prefix: str | None, dispatch_date: date) -> str:
        prefix = (prefix or FALLBACK_PREFIX).upper()
        counter_name = f"{prefix}-{dispatch_date:%Y%m%d}"
        value = self._next_value(counter_name)
        challan_no = format_challan_no(prefix, dispatch_date, value)
        logger.debug(
            "challan_allocated",
            extra={"counter": counter_name, "value": value, "challan_no": challan_no},
        )
        return challan_no

    def current_value(self, prefix: str, dispatch_date: date) -> int | None:
        """Last number issued for the prefix and day, without incrementing."""
        counter_name = f"{prefix.upper()}-{dispatch_date:%Y%m%d}"
        return self._session.execute(
            select(ChallanCounter.current_value).where(ChallanCounter.name == counter_name)
        ).scalar_one_or_none()

    def _lock_counter(self, counter_name: str) -> ChallanCounter | None:
        return self._session.execute(
            select(ChallanCounter)
            .where(ChallanCounter.name == counter_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _next_value(self, counter_name: str) -> int:
        counter = self._lock_counter(counter_name)

        if counter is None:
            # First dispatch of the day for this prefix.  Another writer may
            # create the row at the same moment; use a savepoint so losing
            # that race does not roll back the caller's work.
            savepoint = self._session.begin_nested()
            try:
                counter = ChallanCounter(name=counter_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                return 1
            except IntegrityError:
                logger.debug(
                    "challan_counter_race_retry",
                    extra={"counter": counter_name},
                )
                savepoint.rollback()
                counter = self._lock_counter(counter_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        return counter.current_value
