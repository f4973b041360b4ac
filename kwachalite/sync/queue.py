"""
Persistent Sync Queue

DESIGN DECISION: Every local mutation is recorded as a queue entry before
anything is sent to the remote backend. The queue is the single source of
truth for "what the backend has not confirmed yet":
1. It is persisted after every change, so a restart never loses entries
2. It is strictly FIFO, so the backend sees mutations in the order they happened
3. Delivery is at-least-once; the backend's upsert/delete by id absorbs repeats

An entry left IN_FLIGHT by a process that died mid-delivery is reset to
PENDING on load and delivered again.
"""

from typing import Any, Callable, Iterator, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from kwachalite.audit import AuditLogger
from kwachalite.models.finance import EntityType
from kwachalite.models.sync import EntryState, SyncOperation, SyncQueueEntry
from kwachalite.services.local import LocalPersistenceError, LocalStorageInterface


QUEUE_STORAGE_KEY = "db-sync-queue"


class SyncQueue:
    """
    Ordered, persisted list of pending remote mutations.

    Listeners registered with `add_listener` are called after every enqueue;
    the sync worker uses this to wake up.
    """

    def __init__(
        self,
        storage: LocalStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger("kwachalite.sync.queue")
        self._listeners: list[Callable[[], None]] = []
        self._entries: list[SyncQueueEntry] = self._load()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load(self) -> list[SyncQueueEntry]:
        try:
            raw = self._storage.read_json(QUEUE_STORAGE_KEY)
        except LocalPersistenceError as e:
            self._logger.warning("sync_queue_unreadable", error=str(e))
            if self._audit_logger:
                self._audit_logger.log_persistence_failed(QUEUE_STORAGE_KEY, str(e))
            return []

        if raw is None:
            return []
        if not isinstance(raw, list):
            self._logger.warning("sync_queue_malformed", found=type(raw).__name__)
            return []

        entries = []
        recovered = 0
        for item in raw:
            try:
                entry = SyncQueueEntry.model_validate(item)
            except ValidationError as e:
                self._logger.warning(
                    "sync_queue_entry_dropped",
                    entry=item,
                    error=str(e),
                )
                continue
            if entry.state == EntryState.IN_FLIGHT:
                entry.state = EntryState.PENDING
                recovered += 1
            entries.append(entry)

        if recovered:
            self._logger.info("sync_queue_recovered_in_flight", count=recovered)
        return entries

    def persist(self) -> bool:
        """
        Write the whole queue to local storage.

        Returns False (after logging) if the write failed; the in-memory
        queue is still authoritative for this session.
        """
        try:
            self._storage.write_json(
                QUEUE_STORAGE_KEY,
                [entry.to_storage_dict() for entry in self._entries],
            )
            return True
        except LocalPersistenceError as e:
            self._logger.warning("sync_queue_persist_failed", error=str(e))
            if self._audit_logger:
                self._audit_logger.log_persistence_failed(QUEUE_STORAGE_KEY, str(e))
            return False

    # -------------------------------------------------------------------------
    # Queue operations
    # -------------------------------------------------------------------------

    def enqueue(
        self,
        entity: EntityType,
        operation: SyncOperation,
        entity_id: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> SyncQueueEntry:
        """Append a mutation to the tail of the queue and persist it."""
        entry = SyncQueueEntry(
            entity=entity,
            operation=operation,
            entity_id=entity_id,
            payload=payload if payload is not None else {"id": entity_id},
        )
        self._entries.append(entry)
        self.persist()

        if self._audit_logger:
            self._audit_logger.log_sync_enqueued(
                entity_type=entity.value,
                entity_id=entity_id,
                operation=operation.value,
                entry_id=entry.entry_id,
                queue_length=len(self._entries),
            )

        for listener in list(self._listeners):
            listener()
        return entry

    def entries(self) -> list[SyncQueueEntry]:
        """Snapshot of the queue in delivery order."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SyncQueueEntry]:
        return iter(list(self._entries))

    def peek(self) -> Optional[SyncQueueEntry]:
        """The next entry to deliver, or None if the queue is empty."""
        return self._entries[0] if self._entries else None

    def _find(self, entry_id: UUID) -> SyncQueueEntry:
        for entry in self._entries:
            if entry.entry_id == entry_id:
                return entry
        raise KeyError(f"No queue entry {entry_id}")

    def mark_in_flight(self, entry_id: UUID) -> SyncQueueEntry:
        entry = self._find(entry_id)
        entry.state = EntryState.IN_FLIGHT
        self.persist()
        return entry

    def mark_failed(self, entry_id: UUID, error_message: str) -> SyncQueueEntry:
        """Return an entry to PENDING after a failed delivery attempt."""
        entry = self._find(entry_id)
        entry.state = EntryState.PENDING
        entry.retry_count += 1
        entry.last_error = error_message
        self.persist()
        return entry

    def remove(self, entry_id: UUID) -> bool:
        """Drop a delivered entry. Returns False if it was not queued."""
        for idx, entry in enumerate(self._entries):
            if entry.entry_id == entry_id:
                del self._entries[idx]
                self.persist()
                return True
        return False

    def pending_for(self, entity: EntityType) -> int:
        """Number of queued entries touching a collection."""
        return sum(1 for entry in self._entries if entry.entity == entity)

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback fired after each enqueue.

        Returns a function that unregisters it.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
