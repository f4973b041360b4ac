"""
In-Memory Backend

Row store held in a dict of dicts. Used by tests and by the dashboard when
no Google Sheets credentials are configured.
"""

import copy
from typing import Any

from kwachalite.models.finance import EntityType
from kwachalite.services.backend.interface import (
    BackendConnectionError,
    RemoteBackendInterface,
)


class InMemoryBackend(RemoteBackendInterface):
    """
    Dict-backed implementation of the remote contract.

    `available` can be switched off to simulate an outage.
    """

    def __init__(self):
        self._tables: dict[EntityType, dict[str, dict[str, Any]]] = {}
        self.available = True
        self.calls: list[tuple[str, EntityType, str]] = []

    def _check_available(self) -> None:
        if not self.available:
            raise BackendConnectionError("Backend unavailable")

    def table(self, collection: EntityType) -> dict[str, dict[str, Any]]:
        """Direct view of a table, for inspection."""
        return self._tables.setdefault(collection, {})

    async def upsert(
        self,
        collection: EntityType,
        record_id: str,
        payload: dict[str, Any],
    ) -> None:
        self._check_available()
        self.calls.append(("upsert", collection, record_id))
        self.table(collection)[record_id] = copy.deepcopy(payload)

    async def delete(
        self,
        collection: EntityType,
        record_id: str,
    ) -> bool:
        self._check_available()
        self.calls.append(("delete", collection, record_id))
        return self.table(collection).pop(record_id, None) is not None

    async def fetch_all(
        self,
        collection: EntityType,
    ) -> list[dict[str, Any]]:
        self._check_available()
        return [copy.deepcopy(row) for row in self.table(collection).values()]

    async def ping(self) -> bool:
        return self.available
