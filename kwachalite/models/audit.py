"""
Audit Models for KwachaLite

Every store mutation, delivery attempt and storage fault is recorded as an
audit event. This provides:
1. Traceability of every local edit until the backend confirms it
2. Debugging information when the queue stops draining
3. A history the status views can show

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from kwachalite.models.finance import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Store mutations
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    ENTITY_NOT_FOUND = "entity_not_found"
    DUPLICATE_ID_REPLACED = "duplicate_id_replaced"
    COLLECTION_REFRESHED = "collection_refreshed"
    REFRESH_SKIPPED = "refresh_skipped"

    # Local persistence
    LOCAL_PERSISTENCE_FAILED = "local_persistence_failed"

    # Sync pipeline
    SYNC_ENQUEUED = "sync_enqueued"
    SYNC_DELIVERED = "sync_delivered"
    SYNC_DELIVERY_FAILED = "sync_delivery_failed"
    CONNECTIVITY_CHANGED = "connectivity_changed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Collection name (e.g., 'transactions', 'sync_queue')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the record this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created("transactions", tx.id)
        event = AuditEventBuilder.connectivity_changed(is_online=False)
    """

    @staticmethod
    def entity_created(entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Created {entity_type} record",
            is_user_action=True,
        )

    @staticmethod
    def entity_updated(entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Updated {entity_type} record",
            is_user_action=True,
        )

    @staticmethod
    def entity_deleted(entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Deleted {entity_type} record",
            is_user_action=True,
        )

    @staticmethod
    def entity_not_found(
        entity_type: str,
        entity_id: str,
        operation: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Cannot {operation} {entity_type} record: id not found",
            details={"operation": operation},
        )

    @staticmethod
    def duplicate_id_replaced(entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_ID_REPLACED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Added {entity_type} record reused an existing id; previous record replaced",
        )

    @staticmethod
    def collection_refreshed(entity_type: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_REFRESHED,
            entity_type=entity_type,
            description=f"Replaced {entity_type} with {count} remote records",
            details={"count": count},
        )

    @staticmethod
    def refresh_skipped(entity_type: str, pending: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFRESH_SKIPPED,
            entity_type=entity_type,
            description=f"Kept local {entity_type}: {pending} unsynced changes pending",
            details={"pending": pending},
        )

    @staticmethod
    def local_persistence_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCAL_PERSISTENCE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=key,
            description=f"Could not write '{key}' to local storage; changes kept in memory",
            error_message=error_message,
        )

    @staticmethod
    def sync_enqueued(
        entity_type: str,
        entity_id: str,
        operation: str,
        entry_id: UUID,
        queue_length: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_ENQUEUED,
            severity=AuditSeverity.DEBUG,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Queued {operation} of {entity_type} record",
            details={
                "operation": operation,
                "entry_id": str(entry_id),
                "queue_length": queue_length,
            },
        )

    @staticmethod
    def sync_delivered(
        entity_type: str,
        entity_id: str,
        operation: str,
        retry_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_DELIVERED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Delivered {operation} of {entity_type} record",
            details={
                "operation": operation,
                "retry_count": retry_count,
            },
        )

    @staticmethod
    def sync_delivery_failed(
        entity_type: str,
        entity_id: str,
        operation: str,
        retry_count: int,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_DELIVERY_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Delivery of {operation} failed; will retry (attempt {retry_count})",
            details={
                "operation": operation,
                "retry_count": retry_count,
            },
            error_message=error_message,
        )

    @staticmethod
    def connectivity_changed(is_online: bool) -> AuditEvent:
        state = "online" if is_online else "offline"
        return AuditEvent(
            event_type=AuditEventType.CONNECTIVITY_CHANGED,
            description=f"Connectivity changed: {state}",
            details={"is_online": is_online},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
