"""
Connectivity Monitor

Holds the online/offline flag and notifies subscribers on transitions.
Callers flip it explicitly with `set_online`, or let `probe` ping the
remote backend and flip it from the result.
"""

from typing import Callable, Optional

import structlog

from kwachalite.audit import AuditLogger
from kwachalite.services.backend import RemoteBackendInterface


class ConnectivityMonitor:
    """Online/offline state with transition callbacks."""

    def __init__(
        self,
        initial_online: bool = True,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._online = initial_online
        self._audit_logger = audit_logger
        self._subscribers: list[Callable[[bool], None]] = []
        self._logger = structlog.get_logger("kwachalite.sync.connectivity")

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> bool:
        """
        Record the current connectivity.

        Subscribers are only called on an actual transition.

        Returns:
            True if the state changed
        """
        if online == self._online:
            return False

        self._online = online
        self._logger.info("connectivity_changed", is_online=online)
        if self._audit_logger:
            self._audit_logger.log_connectivity_changed(online)

        for callback in list(self._subscribers):
            try:
                callback(online)
            except Exception as e:
                self._logger.exception("connectivity_subscriber_failed", error=str(e))
                if self._audit_logger:
                    self._audit_logger.log_error(
                        error_type="connectivity_subscriber",
                        error_message=str(e),
                    )
        return True

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """
        Call `callback(is_online)` on every transition.

        Returns a function that unsubscribes.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def probe(self, backend: RemoteBackendInterface) -> bool:
        """Ping the backend and update the flag from the result."""
        online = await backend.ping()
        self.set_online(online)
        return online
