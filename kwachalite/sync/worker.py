"""
Sync Worker

Drains the sync queue to the remote backend.

DESIGN DECISION: Delivery is strictly sequential and FIFO. A pass walks the
queue from the head; the first failure puts that entry back to PENDING with
its retry counter bumped and ends the pass. Nothing behind a failed entry is
attempted, so the backend never sees mutations out of order.

The worker wakes when:
1. An entry is enqueued
2. Connectivity goes from offline to online
3. Someone calls `notify()`
4. The retry interval elapses with nothing else happening

Retries are unbounded. There is no terminal failed state.
"""

import asyncio
from typing import Callable, Optional

import structlog

from kwachalite.audit import AuditLogger
from kwachalite.config import get_settings
from kwachalite.models.finance import utcnow
from kwachalite.models.sync import DrainReport, SyncOperation, SyncQueueEntry, SyncState
from kwachalite.services.backend import BackendError, RemoteBackendInterface
from kwachalite.sync.connectivity import ConnectivityMonitor
from kwachalite.sync.queue import SyncQueue


class SyncWorker:
    """
    Background task delivering queued mutations.

    Usage:
        worker = SyncWorker(queue, backend, connectivity)
        worker.start()          # inside a running event loop
        ...
        await worker.stop()
    """

    def __init__(
        self,
        queue: SyncQueue,
        backend: RemoteBackendInterface,
        connectivity: ConnectivityMonitor,
        audit_logger: Optional[AuditLogger] = None,
        retry_interval: Optional[float] = None,
        probe_connectivity: Optional[bool] = None,
    ):
        settings = get_settings().sync
        self._queue = queue
        self._backend = backend
        self._connectivity = connectivity
        self._audit_logger = audit_logger
        self._retry_interval = (
            retry_interval if retry_interval is not None else settings.retry_interval_seconds
        )
        self._probe = (
            probe_connectivity if probe_connectivity is not None else settings.probe_connectivity
        )
        self._logger = structlog.get_logger("kwachalite.sync.worker")

        self._wake = asyncio.Event()
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._running = False

        self._state = SyncState(is_online=connectivity.is_online)
        self._state_listeners: list[Callable[[SyncState], None]] = []

        self._unsubscribers = [
            queue.add_listener(self.notify),
            connectivity.subscribe(self._on_connectivity_change),
        ]

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        return self._state.model_copy()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_state_change(self, callback: Callable[[SyncState], None]) -> Callable[[], None]:
        """
        Call `callback(state)` whenever the sync state changes.

        Returns a function that unsubscribes.
        """
        self._state_listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._state_listeners:
                self._state_listeners.remove(callback)

        return unsubscribe

    def _set_state(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)
        for callback in list(self._state_listeners):
            callback(self.state)

    def _on_connectivity_change(self, online: bool) -> None:
        self._set_state(is_online=online)
        if online:
            self.notify()

    def notify(self) -> None:
        """Wake the worker for an immediate pass."""
        self._wake.set()

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    async def _deliver(self, entry: SyncQueueEntry) -> None:
        if entry.operation == SyncOperation.DELETE:
            await self._backend.delete(entry.entity, entry.entity_id)
        else:
            await self._backend.upsert(entry.entity, entry.entity_id, entry.payload)

    async def drain(self) -> DrainReport:
        """
        Deliver queued entries in order until the queue is empty or one fails.

        Skipped entirely while offline. Concurrent calls run one after the
        other.
        """
        report = DrainReport()
        if not self._connectivity.is_online:
            report.skipped_offline = True
            report.remaining = len(self._queue)
            return report

        async with self._lock:
            self._set_state(is_syncing=True, sync_error=None)
            try:
                while self._connectivity.is_online:
                    entry = self._queue.peek()
                    if entry is None:
                        break

                    self._queue.mark_in_flight(entry.entry_id)
                    try:
                        await self._deliver(entry)
                    except BackendError as e:
                        failed = self._queue.mark_failed(entry.entry_id, str(e))
                        report.failed = entry.entry_id
                        report.error_message = str(e)
                        self._logger.warning(
                            "sync_delivery_failed",
                            entity=entry.entity.value,
                            entity_id=entry.entity_id,
                            retry_count=failed.retry_count,
                            error=str(e),
                        )
                        if self._audit_logger:
                            self._audit_logger.log_sync_failed(
                                entity_type=entry.entity.value,
                                entity_id=entry.entity_id,
                                operation=entry.operation.value,
                                retry_count=failed.retry_count,
                                error_message=str(e),
                            )
                        break
                    except Exception as e:
                        # Keep the entry retryable, then let the caller see the bug
                        self._queue.mark_failed(entry.entry_id, f"{type(e).__name__}: {e}")
                        raise

                    self._queue.remove(entry.entry_id)
                    report.delivered.append(entry.entry_id)
                    if self._audit_logger:
                        self._audit_logger.log_sync_delivered(
                            entity_type=entry.entity.value,
                            entity_id=entry.entity_id,
                            operation=entry.operation.value,
                            retry_count=entry.retry_count,
                        )
            finally:
                report.remaining = len(self._queue)
                if report.failed is None:
                    self._set_state(is_syncing=False, last_sync_time=utcnow())
                else:
                    self._set_state(is_syncing=False, sync_error=report.error_message)

        if report.delivered or report.failed:
            self._logger.info(
                "sync_pass_finished",
                delivered=len(report.delivered),
                failed=str(report.failed) if report.failed else None,
                remaining=report.remaining,
            )
        return report

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """Drain, then sleep until woken or the retry interval elapses. Repeat."""
        self._running = True
        self._logger.info("sync_worker_started", retry_interval=self._retry_interval)
        while self._running:
            self._wake.clear()

            if self._probe:
                await self._connectivity.probe(self._backend)

            try:
                await self.drain()
            except Exception as e:
                self._logger.exception("sync_pass_crashed", error=str(e))
                if self._audit_logger:
                    self._audit_logger.log_error(
                        error_type="sync_worker",
                        error_message=str(e),
                    )

            if not self._running:
                break
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._retry_interval)
            except asyncio.TimeoutError:
                pass
        self._logger.info("sync_worker_stopped", remaining=len(self._queue))

    def start(self) -> asyncio.Task:
        """Start the background task. Must be called from a running loop."""
        if not self.is_running:
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self, timeout: float = 10.0) -> None:
        """
        Stop the background task, letting an in-progress delivery finish.

        Undelivered entries stay in the persisted queue.
        """
        if self._task is None:
            return
        self._running = False
        self._wake.set()
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            self._logger.warning("sync_worker_stop_timeout", timeout=timeout)
        finally:
            self._task = None

    def close(self) -> None:
        """Detach from the queue and connectivity monitor."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
