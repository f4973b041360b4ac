"""
Sync Models

Records that describe pending remote mutations and the health of the sync
pipeline. Queue entries are persisted with camelCase keys
(`enqueuedAt`, `retryCount`, ...) so the on-disk queue reads the same as the
collection layout it sits next to.

State machine per entry:

    PENDING -> IN_FLIGHT -> (delivered, removed from queue)
                   |
                   +-> PENDING (retry_count + 1)

There is no terminal failed state. Entries retry for as long as the
application runs.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kwachalite.models.finance import EntityType, utcnow


class SyncOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class EntryState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"


class SyncQueueEntry(BaseModel):
    """One local mutation awaiting remote confirmation."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    entry_id: UUID = Field(default_factory=uuid4)
    entity: EntityType
    operation: SyncOperation
    entity_id: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Full record for create/update, just the id for delete"
    )
    enqueued_at: datetime = Field(default_factory=utcnow)
    retry_count: int = Field(default=0, ge=0)
    state: EntryState = EntryState.PENDING
    last_error: Optional[str] = None

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class MutationOutcome(str, Enum):
    APPLIED = "applied"
    NOT_FOUND = "not_found"


class MutationResult(BaseModel):
    """
    Outcome of a store mutation.

    Missing ids are reported as NOT_FOUND instead of being ignored, so
    callers can tell a logic error apart from a successful no-op.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    outcome: MutationOutcome
    entity: EntityType
    entity_id: str
    persisted: bool = Field(
        default=True,
        description="False when the local storage write failed"
    )
    entry_id: Optional[UUID] = Field(
        default=None,
        description="Queue entry created for this mutation"
    )
    record: Optional[Any] = None

    @property
    def applied(self) -> bool:
        return self.outcome == MutationOutcome.APPLIED

    @property
    def not_found(self) -> bool:
        return self.outcome == MutationOutcome.NOT_FOUND


class DrainReport(BaseModel):
    """Summary of one pass of the sync worker over the queue."""

    started_at: datetime = Field(default_factory=utcnow)
    skipped_offline: bool = False
    delivered: list[UUID] = Field(default_factory=list)
    failed: Optional[UUID] = Field(
        default=None,
        description="Entry that stopped the pass, if any"
    )
    error_message: Optional[str] = None
    remaining: int = Field(default=0, ge=0)

    @property
    def stopped_early(self) -> bool:
        return self.failed is not None


class SyncState(BaseModel):
    """Live state of the sync worker."""

    is_online: bool = True
    is_syncing: bool = False
    last_sync_time: Optional[datetime] = None
    sync_error: Optional[str] = None


class SyncStatus(BaseModel):
    """Read-only snapshot rendered by status banners."""

    queue_length: int = Field(ge=0)
    is_online: bool
    is_syncing: bool = False
    last_sync_time: Optional[datetime] = None
    sync_error: Optional[str] = None

    @property
    def has_unsaved_changes(self) -> bool:
        return self.queue_length > 0
