"""Services package."""

from kwachalite.services.backend import (
    BackendConnectionError,
    BackendError,
    BackendRejectedError,
    InMemoryBackend,
    RemoteBackendInterface,
)
from kwachalite.services.local import (
    JsonFileStorage,
    LocalPersistenceError,
    LocalStorageInterface,
    MemoryLocalStorage,
)

__all__ = [
    # Remote backend
    "BackendConnectionError",
    "BackendError",
    "BackendRejectedError",
    "InMemoryBackend",
    "RemoteBackendInterface",
    # Local storage
    "JsonFileStorage",
    "LocalPersistenceError",
    "LocalStorageInterface",
    "MemoryLocalStorage",
]
