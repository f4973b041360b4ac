"""Offline sync: persisted queue, delivery worker and status observers."""

from kwachalite.sync.connectivity import ConnectivityMonitor
from kwachalite.sync.queue import QUEUE_STORAGE_KEY, SyncQueue
from kwachalite.sync.status import UNSAVED_CHANGES_MESSAGE, SyncStatusObserver, UnloadGuard
from kwachalite.sync.worker import SyncWorker

__all__ = [
    "ConnectivityMonitor",
    "QUEUE_STORAGE_KEY",
    "SyncQueue",
    "SyncStatusObserver",
    "SyncWorker",
    "UNSAVED_CHANGES_MESSAGE",
    "UnloadGuard",
]
