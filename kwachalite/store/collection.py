"""
Entity Collection

One ordered list of records of a single entity kind, mirrored to its own
local storage key. Every mutation:
1. Updates the in-memory list
2. Re-serializes the whole list to local storage
3. Enqueues a sync entry carrying the full record (or just the id for deletes)

DESIGN DECISION: Records are copied on the way in and on the way out.
Callers can never mutate a stored record without going through `update`,
so no change can bypass the sync queue.

Concurrent edits from other devices are resolved last-write-wins: whatever
upsert reaches the backend last is the remote value. There are no version
stamps.
"""

from typing import Generic, Iterator, Optional, TypeVar

import structlog
from pydantic import ValidationError

from kwachalite.audit import AuditLogger
from kwachalite.models.finance import (
    ENTITY_MODELS,
    EntityType,
    FinanceRecord,
    Workspace,
    create_id,
)
from kwachalite.models.sync import MutationOutcome, MutationResult, SyncOperation
from kwachalite.services.local import LocalPersistenceError, LocalStorageInterface
from kwachalite.sync.queue import SyncQueue


R = TypeVar("R", bound=FinanceRecord)


class EntityCollection(Generic[R]):
    """Insertion-ordered records of one entity kind, keyed by id."""

    def __init__(
        self,
        entity: EntityType,
        storage: LocalStorageInterface,
        queue: SyncQueue,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.entity = entity
        self.model: type[R] = ENTITY_MODELS[entity]
        self._storage = storage
        self._queue = queue
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger("kwachalite.store").bind(entity=entity.value)
        self._records: list[R] = []
        self.loaded_from_storage = self._load()

    @property
    def storage_key(self) -> str:
        return self.entity.value

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load(self) -> bool:
        """Load saved records. Returns True if a saved copy existed."""
        try:
            raw = self._storage.read_json(self.storage_key)
        except LocalPersistenceError as e:
            self._logger.warning("collection_unreadable", error=str(e))
            if self._audit_logger:
                self._audit_logger.log_persistence_failed(self.storage_key, str(e))
            return False

        if raw is None:
            return False
        if not isinstance(raw, list):
            self._logger.warning("collection_malformed", found=type(raw).__name__)
            return False

        for item in raw:
            try:
                self._records.append(self.model.model_validate(item))
            except ValidationError as e:
                self._logger.warning("record_dropped_on_load", record=item, error=str(e))
        return True

    def persist(self) -> bool:
        """
        Write the whole collection to local storage.

        Failures are logged and reported as False; the in-memory state and
        any queued sync entry still stand.
        """
        try:
            self._storage.write_json(
                self.storage_key,
                [record.to_payload() for record in self._records],
            )
            return True
        except LocalPersistenceError as e:
            self._logger.warning("collection_persist_failed", error=str(e))
            if self._audit_logger:
                self._audit_logger.log_persistence_failed(self.storage_key, str(e))
            return False

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _index_of(self, record_id: str) -> Optional[int]:
        for idx, record in enumerate(self._records):
            if record.id == record_id:
                return idx
        return None

    def get(self, record_id: str) -> Optional[R]:
        idx = self._index_of(record_id)
        if idx is None:
            return None
        return self._records[idx].model_copy(deep=True)

    def all(self) -> list[R]:
        return [record.model_copy(deep=True) for record in self._records]

    def for_workspace(self, workspace: Workspace) -> list[R]:
        """Records belonging to a workspace. Entities without one are always included."""
        return [
            record for record in self.all()
            if getattr(record, "workspace", workspace) == workspace
        ]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[R]:
        return iter(self.all())

    def __contains__(self, record_id: object) -> bool:
        return isinstance(record_id, str) and self._index_of(record_id) is not None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def _check_type(self, record: FinanceRecord) -> None:
        if not isinstance(record, self.model):
            raise TypeError(
                f"{self.entity.value} holds {self.model.__name__}, got {type(record).__name__}"
            )

    def _not_found(self, record_id: str, operation: SyncOperation) -> MutationResult:
        self._logger.warning(
            "record_not_found",
            entity_id=record_id,
            operation=operation.value,
        )
        if self._audit_logger:
            self._audit_logger.log_entity_not_found(
                self.entity.value, record_id, operation.value
            )
        return MutationResult(
            outcome=MutationOutcome.NOT_FOUND,
            entity=self.entity,
            entity_id=record_id,
        )

    def add(self, record: R) -> MutationResult:
        """
        Append a record and queue a create.

        An id that is already present replaces the stored record in place.
        """
        self._check_type(record)
        stored = record.model_copy(deep=True)
        if not stored.id:
            stored.id = create_id()

        idx = self._index_of(stored.id)
        if idx is None:
            self._records.append(stored)
        else:
            self._records[idx] = stored
            self._logger.warning("duplicate_id_replaced", entity_id=stored.id)
            if self._audit_logger:
                self._audit_logger.log_duplicate_id(self.entity.value, stored.id)

        persisted = self.persist()
        entry = self._queue.enqueue(
            self.entity, SyncOperation.CREATE, stored.id, stored.to_payload()
        )
        if self._audit_logger:
            self._audit_logger.log_entity_created(self.entity.value, stored.id)

        return MutationResult(
            outcome=MutationOutcome.APPLIED,
            entity=self.entity,
            entity_id=stored.id,
            persisted=persisted,
            entry_id=entry.entry_id,
            record=stored.model_copy(deep=True),
        )

    def update(self, record: R) -> MutationResult:
        """Replace the record with the same id and queue an update with the full record."""
        self._check_type(record)
        idx = self._index_of(record.id)
        if idx is None:
            return self._not_found(record.id, SyncOperation.UPDATE)

        stored = record.model_copy(deep=True)
        self._records[idx] = stored
        persisted = self.persist()
        entry = self._queue.enqueue(
            self.entity, SyncOperation.UPDATE, stored.id, stored.to_payload()
        )
        if self._audit_logger:
            self._audit_logger.log_entity_updated(self.entity.value, stored.id)

        return MutationResult(
            outcome=MutationOutcome.APPLIED,
            entity=self.entity,
            entity_id=stored.id,
            persisted=persisted,
            entry_id=entry.entry_id,
            record=stored.model_copy(deep=True),
        )

    def delete(self, record_id: str) -> MutationResult:
        """Remove a record and queue a delete."""
        idx = self._index_of(record_id)
        if idx is None:
            return self._not_found(record_id, SyncOperation.DELETE)

        del self._records[idx]
        persisted = self.persist()
        entry = self._queue.enqueue(
            self.entity, SyncOperation.DELETE, record_id, {"id": record_id}
        )
        if self._audit_logger:
            self._audit_logger.log_entity_deleted(self.entity.value, record_id)

        return MutationResult(
            outcome=MutationOutcome.APPLIED,
            entity=self.entity,
            entity_id=record_id,
            persisted=persisted,
            entry_id=entry.entry_id,
        )

    def replace_all(self, records: list[R]) -> bool:
        """
        Replace every record without queueing anything.

        Used for seeding defaults and for rows pulled from the backend,
        which are already in sync by definition.
        """
        for record in records:
            self._check_type(record)
        self._records = [record.model_copy(deep=True) for record in records]
        return self.persist()
