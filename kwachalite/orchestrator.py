"""
Application Container for KwachaLite

This module ties together all the components:
1. Local storage and the store built on it
2. The persisted sync queue
3. The sync worker delivering the queue to the remote backend
4. Status observers and the unload guard

DESIGN DECISION: The container enforces the boundaries:
- Every store mutation is persisted locally and queued before anything else
- Nothing but the sync worker talks to the backend for writes
- Shutdown with undelivered changes requires an explicit `force`

Flow of a mutation:

    view -> store (memory + local storage) -> queue (persisted)
         -> worker (woken) -> backend.upsert / backend.delete
         -> entry removed, or retried on the next wake
"""

from typing import Optional

import structlog

from kwachalite.audit import AuditLogger
from kwachalite.config import get_settings
from kwachalite.models.finance import EntityType
from kwachalite.services.backend import (
    BackendError,
    InMemoryBackend,
    RemoteBackendInterface,
)
from kwachalite.services.backend.google_sheets import GoogleSheetsBackend, GoogleSheetsClient
from kwachalite.services.local import JsonFileStorage, LocalStorageInterface
from kwachalite.queries import FinanceSummaries
from kwachalite.store import FinanceStore, Preferences
from kwachalite.sync import (
    ConnectivityMonitor,
    SyncQueue,
    SyncStatusObserver,
    SyncWorker,
    UnloadGuard,
)
from kwachalite.validation import RecordValidator


logger = structlog.get_logger("kwachalite.app")


class UnsavedChangesError(Exception):
    """Raised when stopping while queued changes are undelivered."""

    def __init__(self, message: str, queue_length: int):
        super().__init__(message)
        self.queue_length = queue_length


class FinanceApp:
    """
    Wires the store, queue, worker and observers around one local storage
    and one remote backend.

    Usage:
        app = FinanceApp(JsonFileStorage(path), backend)
        app.start()
        app.store.transactions.add(txn)
        ...
        await app.stop()
    """

    def __init__(
        self,
        storage: LocalStorageInterface,
        backend: RemoteBackendInterface,
        audit_logger: Optional[AuditLogger] = None,
        connectivity: Optional[ConnectivityMonitor] = None,
        retry_interval: Optional[float] = None,
        probe_connectivity: Optional[bool] = None,
        status_poll_interval: Optional[float] = None,
        seed_default_categories: Optional[bool] = None,
    ):
        self.audit_logger = audit_logger or AuditLogger(
            history_size=get_settings().app.audit_history_size
        )
        self.storage = storage
        self.backend = backend

        self.queue = SyncQueue(storage, self.audit_logger)
        self.store = FinanceStore(
            storage,
            self.queue,
            self.audit_logger,
            seed_default_categories=seed_default_categories,
        )
        self.connectivity = connectivity or ConnectivityMonitor(audit_logger=self.audit_logger)
        self.worker = SyncWorker(
            self.queue,
            backend,
            self.connectivity,
            audit_logger=self.audit_logger,
            retry_interval=retry_interval,
            probe_connectivity=probe_connectivity,
        )
        self.status = SyncStatusObserver(
            storage,
            self.connectivity,
            worker=self.worker,
            poll_interval=status_poll_interval,
        )
        self.unload_guard = UnloadGuard(self.status, self.queue)

        self.preferences = Preferences(storage)
        self.summaries = FinanceSummaries(self.store)
        self.validator = RecordValidator(self.store)

        if len(self.queue):
            logger.info("pending_changes_on_startup", queue_length=len(self.queue))

    def start(self) -> None:
        """Start background delivery. Must be called from a running loop."""
        self.worker.start()

    async def stop(self, force: bool = False) -> None:
        """
        Stop background delivery.

        One last drain is attempted first. If entries are still queued
        afterwards, UnsavedChangesError is raised and the worker keeps
        running, unless `force` is set. Entries counted include any whose
        write to local storage failed, since those would be lost on exit.
        """
        await self.worker.drain()
        warning = self.unload_guard.before_unload()
        if warning and not force:
            raise UnsavedChangesError(warning, self.unload_guard.pending_count)

        await self.worker.stop()
        self.worker.close()
        logger.info("app_stopped", queue_length=len(self.queue), forced=force)

    async def refresh_from_remote(self) -> dict[EntityType, bool]:
        """
        Replace local collections with the backend's copy.

        Collections with queued changes are left alone, as are collections
        the backend could not return.

        Returns:
            Which collections were refreshed
        """
        results = {entity: False for entity in EntityType}
        if not self.connectivity.is_online:
            logger.info("refresh_skipped_offline")
            return results

        for entity in EntityType:
            if self.queue.pending_for(entity):
                self.audit_logger.log_refresh_skipped(entity.value, self.queue.pending_for(entity))
                continue
            try:
                rows = await self.backend.fetch_all(entity)
            except BackendError as e:
                logger.warning("refresh_fetch_failed", entity=entity.value, error=str(e))
                continue
            results[entity] = self.store.replace_collection(entity, rows)
        return results


def create_app_components(
    use_remote: bool = True,
    storage: Optional[LocalStorageInterface] = None,
) -> FinanceApp:
    """
    Factory function to create the application.

    Args:
        use_remote: Whether to connect to Google Sheets.
                    Set to False to keep everything in memory on the remote side.
        storage: Local storage to use; defaults to JSON files under
                 KWACHALITE_DATA_DIR

    Returns:
        A FinanceApp, not yet started
    """
    settings = get_settings()
    storage = storage or JsonFileStorage(settings.store.data_dir)
    audit_logger = AuditLogger(history_size=settings.app.audit_history_size)

    backend: RemoteBackendInterface
    if use_remote:
        try:
            backend = GoogleSheetsBackend(GoogleSheetsClient())
        except Exception as e:
            # Remote not configured - continue with local-only delivery
            logger.warning("remote_backend_not_configured", error=str(e))
            audit_logger.log_error(
                error_type="remote_backend_config",
                error_message=str(e),
            )
            backend = InMemoryBackend()
    else:
        backend = InMemoryBackend()

    return FinanceApp(storage, backend, audit_logger=audit_logger)
