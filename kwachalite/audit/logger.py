"""
Audit Logger

DESIGN DECISION: Every significant action in the store and the sync
pipeline is logged. This provides:
1. Complete traceability of local edits until the backend confirms them
2. Debugging capability when the queue stops draining
3. A recent-history view for the status banner

The audit logger:
- Is synchronous, because store mutations run inline on the event loop
- Never raises; a logging failure must not break a mutation
- Keeps a bounded in-memory history of recent events
"""

from collections import deque
from typing import Optional
from uuid import UUID

import structlog

from kwachalite.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory ring buffer (for status views and tests)
    """

    def __init__(self, history_size: int = 500):
        self._logger = structlog.get_logger("kwachalite.audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._history.append(event)
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history))[:limit]

    def log_entity_created(self, entity_type: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.entity_created(entity_type, entity_id))

    def log_entity_updated(self, entity_type: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.entity_updated(entity_type, entity_id))

    def log_entity_deleted(self, entity_type: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.entity_deleted(entity_type, entity_id))

    def log_entity_not_found(
        self,
        entity_type: str,
        entity_id: str,
        operation: str,
    ) -> None:
        """Log an update/delete that referenced a missing id."""
        self.log(AuditEventBuilder.entity_not_found(entity_type, entity_id, operation))

    def log_duplicate_id(self, entity_type: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.duplicate_id_replaced(entity_type, entity_id))

    def log_collection_refreshed(self, entity_type: str, count: int) -> None:
        self.log(AuditEventBuilder.collection_refreshed(entity_type, count))

    def log_refresh_skipped(self, entity_type: str, pending: int) -> None:
        self.log(AuditEventBuilder.refresh_skipped(entity_type, pending))

    def log_persistence_failed(self, key: str, error_message: str) -> None:
        """Log a local storage write failure (non-fatal)."""
        self.log(AuditEventBuilder.local_persistence_failed(key, error_message))

    def log_sync_enqueued(
        self,
        entity_type: str,
        entity_id: str,
        operation: str,
        entry_id: UUID,
        queue_length: int,
    ) -> None:
        self.log(AuditEventBuilder.sync_enqueued(
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            entry_id=entry_id,
            queue_length=queue_length,
        ))

    def log_sync_delivered(
        self,
        entity_type: str,
        entity_id: str,
        operation: str,
        retry_count: int,
    ) -> None:
        self.log(AuditEventBuilder.sync_delivered(
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            retry_count=retry_count,
        ))

    def log_sync_failed(
        self,
        entity_type: str,
        entity_id: str,
        operation: str,
        retry_count: int,
        error_message: str,
    ) -> None:
        """Log a failed delivery attempt; the entry stays queued."""
        self.log(AuditEventBuilder.sync_delivery_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            retry_count=retry_count,
            error_message=error_message,
        ))

    def log_connectivity_changed(self, is_online: bool) -> None:
        self.log(AuditEventBuilder.connectivity_changed(is_online))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))
