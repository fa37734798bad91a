"""In-memory counter table for the rate gate, plus its background sweeper."""

import asyncio
import logging
import threading
import time
from collections.abc import Callable

from src.domain.entities.rate_limit import RateLimitRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def now_ms() -> int:
    """Wall clock in milliseconds."""
    return int(time.time() * 1000)


class RateLimitStore:
    """identifier -> RateLimitRecord, guarded by a single lock.

    The lock makes each read-modify-write atomic, so concurrent checks for the
    same identifier never lose increments.
    """

    def __init__(self, clock: Clock = now_ms) -> None:
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()
        self.clock = clock

    @property
    def lock(self) -> threading.Lock:
        """Lock to hold around a read-modify-write sequence."""
        return self._lock

    def get(self, identifier: str) -> RateLimitRecord | None:
        """Raw record (caller holds the lock)."""
        return self._records.get(identifier)

    def put(self, record: RateLimitRecord) -> None:
        """Insert or overwrite (caller holds the lock)."""
        self._records[record.identifier] = record

    def delete(self, identifier: str) -> bool:
        with self._lock:
            return self._records.pop(identifier, None) is not None

    def delete_for_user(self, user_id: int | str) -> int:
        """Drop every record whose identifier ends with ``:<user_id>``."""
        suffix = f":{user_id}"
        with self._lock:
            keys = [k for k in self._records if k.endswith(suffix)]
            for key in keys:
                del self._records[key]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def sweep(self) -> int:
        """Remove expired records. Returns how many were dropped."""
        now = self.clock()
        with self._lock:
            expired = [k for k, r in self._records.items() if r.reset_time < now]
            for key in expired:
                del self._records[key]
        if expired:
            logger.debug("Rate limit sweep removed %d record(s)", len(expired))
        return len(expired)

    def records(self) -> list[dict]:
        """Snapshot of all records with an ``expired`` flag."""
        now = self.clock()
        with self._lock:
            return [
                {
                    "identifier": r.identifier,
                    "count": r.count,
                    "reset_time": r.reset_time,
                    "expired": r.reset_time < now,
                }
                for r in self._records.values()
            ]

    def __len__(self) -> int:
        return len(self._records)


class RateLimitSweeper:
    """Periodically calls ``store.sweep()`` on the running event loop."""

    def __init__(self, store: RateLimitStore, interval_seconds: float = 3600) -> None:
        self._store = store
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-limit-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self._store.sweep()
