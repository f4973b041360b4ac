"""
Remote Backend Package

Row-per-entity remote storage the sync worker delivers to.
"""

from kwachalite.services.backend.interface import (
    BackendConnectionError,
    BackendError,
    BackendRejectedError,
    RemoteBackendInterface,
)
from kwachalite.services.backend.memory import InMemoryBackend

__all__ = [
    "BackendConnectionError",
    "BackendError",
    "BackendRejectedError",
    "InMemoryBackend",
    "RemoteBackendInterface",
]
