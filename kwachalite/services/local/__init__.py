"""
Local Storage Package

Durable key/value storage for the store's collections, the sync queue and
user preferences.
"""

from kwachalite.services.local.interface import (
    LocalPersistenceError,
    LocalStorageInterface,
)
from kwachalite.services.local.json_file import JsonFileStorage
from kwachalite.services.local.memory import MemoryLocalStorage

__all__ = [
    "JsonFileStorage",
    "LocalPersistenceError",
    "LocalStorageInterface",
    "MemoryLocalStorage",
]
