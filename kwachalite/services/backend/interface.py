"""
Abstract Remote Backend Interface

DESIGN DECISION: The sync worker talks to the remote store through a small
abstract interface. This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing
3. Keep the queue and worker ignorant of any vendor SDK

The contract is deliberately tiny: row-per-entity tables keyed by the
client-generated id, with idempotent upsert and delete by id. Delivering
the same create or update twice must leave the same remote state as
delivering it once.
"""

from abc import ABC, abstractmethod
from typing import Any

from kwachalite.models.finance import EntityType


class RemoteBackendInterface(ABC):
    """
    Abstract interface for the remote row store.

    Any backend implementation must implement these methods.
    """

    @abstractmethod
    async def upsert(
        self,
        collection: EntityType,
        record_id: str,
        payload: dict[str, Any],
    ) -> None:
        """
        Insert or replace the row keyed by record_id.

        Args:
            collection: Table to write to
            record_id: Client-generated id of the record
            payload: Full record

        Raises:
            BackendConnectionError: Backend unreachable
            BackendRejectedError: Backend refused the write
        """
        pass

    @abstractmethod
    async def delete(
        self,
        collection: EntityType,
        record_id: str,
    ) -> bool:
        """
        Delete the row keyed by record_id.

        Deleting an absent row is a success (returns False).

        Returns:
            True if a row was removed
        """
        pass

    @abstractmethod
    async def fetch_all(
        self,
        collection: EntityType,
    ) -> list[dict[str, Any]]:
        """
        Fetch every row of a collection.

        Returns:
            List of record payloads
        """
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """
        Check whether the backend is reachable.

        Never raises.
        """
        pass


class BackendError(Exception):
    """Base exception for remote backend operations."""
    pass


class BackendConnectionError(BackendError):
    """Could not reach the remote backend."""
    pass


class BackendRejectedError(BackendError):
    """Remote backend refused the operation."""
    pass
