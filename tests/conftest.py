"""
Shared fixtures.

Every test gets its own in-memory local storage, queue, store and backend,
and the settings cache is cleared with the environment pointed at a
temporary data directory, so no test sees another test's state.
"""

import os
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import pytest

from kwachalite.audit import AuditLogger
from kwachalite.config import get_settings
from kwachalite.models.finance import (
    Category,
    EntityType,
    Transaction,
    TransactionType,
)
from kwachalite.services.backend import (
    BackendConnectionError,
    BackendError,
    InMemoryBackend,
)
from kwachalite.services.local import LocalPersistenceError, MemoryLocalStorage
from kwachalite.store import FinanceStore
from kwachalite.sync import QUEUE_STORAGE_KEY, ConnectivityMonitor, SyncQueue, SyncWorker


@pytest.fixture(autouse=True)
def _isolate_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point the data directory at the test's tmp dir and reload settings."""
    monkeypatch.setenv("KWACHALITE_DATA_DIR", os.fspath(tmp_path / "data"))
    monkeypatch.setenv("SYNC_PROBE_CONNECTIVITY", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FlakyBackend(InMemoryBackend):
    """
    In-memory backend that fails on demand.

    `fail_next(n)` makes the next n write calls raise; `fail_ids` makes
    every write to those ids raise until removed.
    """

    def __init__(self):
        super().__init__()
        self._failures_left = 0
        self._error: BackendError = BackendConnectionError("simulated outage")
        self.fail_ids: set[str] = set()
        self.attempts: list[tuple[str, EntityType, str]] = []

    def fail_next(self, count: int = 1, error: Optional[BackendError] = None) -> None:
        self._failures_left = count
        if error is not None:
            self._error = error

    def _maybe_fail(self, op: str, collection: EntityType, record_id: str) -> None:
        self.attempts.append((op, collection, record_id))
        if record_id in self.fail_ids:
            raise self._error
        if self._failures_left > 0:
            self._failures_left -= 1
            raise self._error

    async def upsert(self, collection: EntityType, record_id: str, payload: dict[str, Any]) -> None:
        self._maybe_fail("upsert", collection, record_id)
        await super().upsert(collection, record_id, payload)

    async def delete(self, collection: EntityType, record_id: str) -> bool:
        self._maybe_fail("delete", collection, record_id)
        return await super().delete(collection, record_id)


class RejectQueueWrites(MemoryLocalStorage):
    """Storage that accepts everything except writes to the sync queue key."""

    def set_item(self, key: str, value: str) -> None:
        if key == QUEUE_STORAGE_KEY:
            raise LocalPersistenceError(key, "quota exceeded")
        super().set_item(key, value)


@pytest.fixture
def storage() -> MemoryLocalStorage:
    return MemoryLocalStorage()


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger(history_size=200)


@pytest.fixture
def queue(storage, audit_logger) -> SyncQueue:
    return SyncQueue(storage, audit_logger)


@pytest.fixture
def store(storage, queue, audit_logger) -> FinanceStore:
    return FinanceStore(storage, queue, audit_logger, seed_default_categories=False)


@pytest.fixture
def backend() -> FlakyBackend:
    return FlakyBackend()


@pytest.fixture
def connectivity(audit_logger) -> ConnectivityMonitor:
    return ConnectivityMonitor(initial_online=True, audit_logger=audit_logger)


@pytest.fixture
def worker(queue, backend, connectivity, audit_logger) -> SyncWorker:
    return SyncWorker(
        queue,
        backend,
        connectivity,
        audit_logger=audit_logger,
        retry_interval=0.05,
        probe_connectivity=False,
    )


def make_transaction(
    description: str = "Lunch",
    amount: str = "1500.00",
    txn_type: TransactionType = TransactionType.EXPENSE,
    category: str = "Food & Dining",
    **kwargs,
) -> Transaction:
    return Transaction(
        date=kwargs.pop("date", date(2024, 6, 10)),
        description=description,
        amount=Decimal(amount),
        type=txn_type,
        category=category,
        **kwargs,
    )


def make_category(name: str = "Groceries", budget: Optional[str] = None, **kwargs) -> Category:
    return Category(
        name=name,
        type=kwargs.pop("type", TransactionType.EXPENSE),
        budget=Decimal(budget) if budget else None,
        **kwargs,
    )
