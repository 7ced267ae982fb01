"""
Per-move write serialization inside one process.

Receipt writes against the same move must not interleave: two recorders
that each read "40 received" and each add 20 against a 50-piece move
would both pass the over-receipt check.  ``SELECT ... FOR UPDATE`` on the
move row covers this across processes on PostgreSQL.  The registry covers
it within a process on every backend, including SQLite, which has no row
locks.

Locks are keyed by move id and created on first use.  An entry lives only
while some thread holds or waits on it, so the registry stays as large as
the set of moves currently being written.  Writes to different moves never
contend.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID

from jobwork_kernel.logging_config import get_logger

logger = get_logger("services.move_locks")


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class MoveLockRegistry:
    """One ``threading.Lock`` per move id, reference counted."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[UUID, _Entry] = {}

    @staticmethod
    def _key(move_id: UUID | str) -> UUID:
        # str and UUID ids address the same row; they must share a lock.
        return move_id if isinstance(move_id, UUID) else UUID(str(move_id))

    def _checkout(self, key: UUID) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            entry.users += 1
            return entry

    def _checkin(self, key: UUID, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, move_id: UUID | str) -> Iterator[None]:
        """Hold the move's lock for the duration of the block."""
        key = self._key(move_id)
        entry = self._checkout(key)
        try:
            if not entry.lock.acquire(blocking=False):
                logger.debug("move_lock_wait", extra={"move_id": str(key)})
                entry.lock.acquire()
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


_default_registry = MoveLockRegistry()


def default_move_locks() -> MoveLockRegistry:
    """Process-wide registry shared by every ReceiptRecorder by default."""
    return _default_registry
