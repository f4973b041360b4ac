"""
Sync Status Observers

Read-only views of the sync pipeline for status banners and shutdown
guards. Queue length is taken from the persisted queue key rather than the
in-memory queue, so the number shown is what would survive a restart.
"""

import asyncio
from typing import AsyncIterator, Optional

import structlog

from kwachalite.config import get_settings
from kwachalite.models.sync import SyncStatus
from kwachalite.services.local import LocalPersistenceError, LocalStorageInterface
from kwachalite.sync.connectivity import ConnectivityMonitor
from kwachalite.sync.queue import QUEUE_STORAGE_KEY, SyncQueue
from kwachalite.sync.worker import SyncWorker


UNSAVED_CHANGES_MESSAGE = "You have unsaved changes. Are you sure you want to leave?"


class SyncStatusObserver:
    """Polls the persisted queue and connectivity into `SyncStatus` snapshots."""

    def __init__(
        self,
        storage: LocalStorageInterface,
        connectivity: ConnectivityMonitor,
        worker: Optional[SyncWorker] = None,
        poll_interval: Optional[float] = None,
    ):
        self._storage = storage
        self._connectivity = connectivity
        self._worker = worker
        self._poll_interval = (
            poll_interval
            if poll_interval is not None
            else get_settings().sync.status_poll_seconds
        )
        self._logger = structlog.get_logger("kwachalite.sync.status")

    def queue_length(self) -> int:
        """Entries in the persisted queue. Unreadable storage counts as 0."""
        try:
            raw = self._storage.read_json(QUEUE_STORAGE_KEY)
        except LocalPersistenceError as e:
            self._logger.debug("sync_status_queue_unreadable", error=str(e))
            return 0
        return len(raw) if isinstance(raw, list) else 0

    def snapshot(self) -> SyncStatus:
        status = SyncStatus(
            queue_length=self.queue_length(),
            is_online=self._connectivity.is_online,
        )
        if self._worker is not None:
            state = self._worker.state
            status.is_syncing = state.is_syncing
            status.last_sync_time = state.last_sync_time
            status.sync_error = state.sync_error
        return status

    async def watch(self) -> AsyncIterator[SyncStatus]:
        """
        Yield a snapshot now, then every poll interval.

        Online/offline transitions produce an extra snapshot immediately.
        """
        changed = asyncio.Event()
        unsubscribe = self._connectivity.subscribe(lambda _online: changed.set())
        try:
            while True:
                yield self.snapshot()
                try:
                    await asyncio.wait_for(changed.wait(), timeout=self._poll_interval)
                except asyncio.TimeoutError:
                    pass
                changed.clear()
        finally:
            unsubscribe()


class UnloadGuard:
    """
    Warns before leaving while queued changes are unconfirmed.

    With a queue given, entries that only exist in memory (their write to
    local storage failed) count as unsaved too.
    """

    def __init__(self, observer: SyncStatusObserver, queue: Optional[SyncQueue] = None):
        self._observer = observer
        self._queue = queue

    @property
    def pending_count(self) -> int:
        in_memory = len(self._queue) if self._queue is not None else 0
        return max(self._observer.queue_length(), in_memory)

    @property
    def has_unsaved_changes(self) -> bool:
        return self.pending_count > 0

    def before_unload(self) -> Optional[str]:
        """The warning to show, or None when it is safe to leave."""
        if self.has_unsaved_changes:
            return UNSAVED_CHANGES_MESSAGE
        return None
