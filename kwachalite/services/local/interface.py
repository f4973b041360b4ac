"""
Abstract Local Storage Interface

DESIGN DECISION: Local persistence is a plain string key/value store, the
same shape as a browser's localStorage. This allows us to:
1. Keep one key per collection plus one for the sync queue
2. Use in-memory storage for testing
3. Swap the on-disk format without touching the store

Every write re-serializes a whole collection. Per-user record counts are
small (tens to low hundreds), so this stays cheap.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Optional


class LocalPersistenceError(Exception):
    """Local storage could not be read, written or (de)serialized."""

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key


class LocalStorageInterface(ABC):
    """
    Abstract interface for durable local key/value storage.

    Implementations raise LocalPersistenceError on any I/O failure.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read the raw value stored under a key.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            LocalPersistenceError: If the storage cannot be read
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Store a raw value under a key, replacing any previous value.

        Raises:
            LocalPersistenceError: If the write fails (quota, permissions, ...)
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List stored keys."""
        pass

    def read_json(self, key: str) -> Any:
        """
        Read and decode a JSON value.

        Returns None if the key is absent.

        Raises:
            LocalPersistenceError: If the value is not valid JSON
        """
        raw = self.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise LocalPersistenceError(key, f"corrupt JSON: {e}")

    def write_json(self, key: str, value: Any) -> None:
        """
        Encode a value as JSON and store it.

        Raises:
            LocalPersistenceError: If the value cannot be serialized or stored
        """
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise LocalPersistenceError(key, f"cannot serialize: {e}")
        self.set_item(key, raw)
