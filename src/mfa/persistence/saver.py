"""Debounced, serialized saving of analysis records.

Edits arrive in bursts (slider drags, typing). Each edit calls
``schedule(record)``, which restarts a per-record timer; only when the
record has been quiet for the debounce window is a snapshot taken and
written to the store. Writes for one record never overlap: a save whose
timer fires while another is in flight waits on the record's lock and
then runs with the latest state.

The sleep function and the blocking-call runner are injectable so tests
can drive the saver with a fake clock and a gated store.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from mfa.config import load_config
from mfa.persistence.store import AnalysisNotFoundError, AnalysisStore, StoreError, utc_now_iso

if TYPE_CHECKING:
    from mfa.analysis.record import AnalysisRecord

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]
BlockingRunner = Callable[..., Awaitable[Any]]


class DebouncedSaver:
    """Schedules record saves after a quiet period."""

    def __init__(
        self,
        store: AnalysisStore,
        *,
        debounce_seconds: float | None = None,
        sleep: SleepFn = asyncio.sleep,
        run_blocking: BlockingRunner = asyncio.to_thread,
    ) -> None:
        """Initialize the saver.

        Args:
            store: Store receiving the snapshots.
            debounce_seconds: Quiet period before a save. Defaults to
                MFA_SAVE_DEBOUNCE_MS.
            sleep: Coroutine function used for the debounce timer.
            run_blocking: Runs the synchronous ``store.save`` without
                blocking the event loop.
        """
        if debounce_seconds is None:
            debounce_seconds = load_config().save_debounce_seconds
        if debounce_seconds < 0:
            raise ValueError(f"debounce_seconds must be non-negative, got {debounce_seconds}")

        self._store = store
        self._debounce_seconds = debounce_seconds
        self._sleep = sleep
        self._run_blocking = run_blocking
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def debounce_seconds(self) -> float:
        return self._debounce_seconds

    def pending(self, record_id: str) -> bool:
        """Whether a debounce timer is waiting for ``record_id``."""
        return record_id in self._timers

    def tracks(self, record_id: str) -> bool:
        """Whether any timer or save state is still held for ``record_id``."""
        return record_id in self._timers or record_id in self._locks

    def schedule(self, record: AnalysisRecord) -> None:
        """Restart the record's debounce timer.

        Must be called from a running event loop.
        """
        self._cancel_timer(record.id)
        task = asyncio.get_running_loop().create_task(self._fire_after_delay(record))
        self._timers[record.id] = task
        self._track(task)

    async def flush(self, record: AnalysisRecord) -> bool:
        """Cancel the pending timer and save immediately.

        Returns:
            True if the save succeeded, False if the store failed. The error
            is available as ``record.last_save_error``.
        """
        self._cancel_timer(record.id)
        return await self._save(record)

    def close(self, record: AnalysisRecord) -> None:
        """Cancel the pending timer without saving."""
        if self._cancel_timer(record.id):
            logger.debug("Dropped pending save for analysis %s", record.id)

    async def wait_idle(self) -> None:
        """Wait until every timer and in-flight save has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _fire_after_delay(self, record: AnalysisRecord) -> None:
        await self._sleep(self._debounce_seconds)
        if self._timers.get(record.id) is asyncio.current_task():
            del self._timers[record.id]
        await self._save(record)

    async def _save(self, record: AnalysisRecord) -> bool:
        lock = self._locks.setdefault(record.id, asyncio.Lock())
        self._lock_users[record.id] = self._lock_users.get(record.id, 0) + 1
        try:
            async with lock:
                return await self._save_locked(record)
        finally:
            self._release_lock(record.id)

    async def _save_locked(self, record: AnalysisRecord) -> bool:
        if record.is_deleted:
            return False

        revision = record.revision
        payload = record.snapshot(utc_now_iso())
        record.mark_saving()
        try:
            await self._run_blocking(self._store.save, record.id, payload)
        except (StoreError, AnalysisNotFoundError) as e:
            record.mark_save_failed(str(e))
            logger.warning("Failed to save analysis %s: %s", record.id, e)
            return False
        except Exception as e:
            record.mark_save_failed(str(e) or type(e).__name__)
            logger.exception("Unexpected error saving analysis %s", record.id)
            return False

        record.mark_saved(revision, payload["updated_at"])
        logger.info("Saved analysis %s at revision %d", record.id, revision)
        return True

    def _release_lock(self, record_id: str) -> None:
        users = self._lock_users[record_id] - 1
        if users:
            self._lock_users[record_id] = users
            return
        del self._lock_users[record_id]
        del self._locks[record_id]

    def _cancel_timer(self, record_id: str) -> bool:
        task = self._timers.pop(record_id, None)
        if task is None:
            return False
        task.cancel()
        return True

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

