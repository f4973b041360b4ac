"""Tests for the persisted sync queue."""

import json

from kwachalite.models.finance import EntityType
from kwachalite.models.sync import EntryState, SyncOperation
from kwachalite.services.local import LocalPersistenceError, MemoryLocalStorage
from kwachalite.sync import QUEUE_STORAGE_KEY, SyncQueue


class BrokenWriteStorage(MemoryLocalStorage):
    """Storage whose writes always fail, as when the disk is full."""

    def set_item(self, key: str, value: str) -> None:
        raise LocalPersistenceError(key, "quota exceeded")


class TestSyncQueue:
    """Tests for enqueue, ordering and persistence."""

    def test_enqueue_appends_in_order(self, queue):
        first = queue.enqueue(EntityType.TRANSACTIONS, SyncOperation.CREATE, "a", {"id": "a"})
        second = queue.enqueue(EntityType.TRANSACTIONS, SyncOperation.CREATE, "b", {"id": "b"})
        assert [e.entry_id for e in queue.entries()] == [first.entry_id, second.entry_id]
        assert queue.peek().entity_id == "a"
        assert len(queue) == 2

    def test_enqueue_persists_camel_case(self, storage, queue):
        queue.enqueue(EntityType.CLIENTS, SyncOperation.DELETE, "c1")
        saved = json.loads(storage.get_item(QUEUE_STORAGE_KEY))
        assert saved[0]["entityId"] == "c1"
        assert saved[0]["operation"] == "delete"
        assert saved[0]["payload"] == {"id": "c1"}

    def test_restart_preserves_entries_and_order(self, storage, queue):
        """A queue rebuilt from storage holds the same entries in the same order."""
        ids = [
            queue.enqueue(EntityType.BILLS, SyncOperation.CREATE, f"b{i}", {"id": f"b{i}"}).entry_id
            for i in range(5)
        ]
        reloaded = SyncQueue(storage)
        assert [e.entry_id for e in reloaded.entries()] == ids
        assert [e.entity_id for e in reloaded.entries()] == ["b0", "b1", "b2", "b3", "b4"]

    def test_in_flight_reset_to_pending_on_load(self, storage, queue):
        entry = queue.enqueue(EntityType.LOANS, SyncOperation.UPDATE, "l1", {"id": "l1"})
        queue.mark_in_flight(entry.entry_id)

        reloaded = SyncQueue(storage)
        assert reloaded.peek().state == EntryState.PENDING

    def test_mark_failed_increments_retry(self, storage, queue):
        entry = queue.enqueue(EntityType.LOANS, SyncOperation.UPDATE, "l1", {"id": "l1"})
        queue.mark_in_flight(entry.entry_id)
        queue.mark_failed(entry.entry_id, "timeout")
        queue.mark_failed(entry.entry_id, "timeout again")

        reloaded = SyncQueue(storage).peek()
        assert reloaded.retry_count == 2
        assert reloaded.last_error == "timeout again"
        assert reloaded.state == EntryState.PENDING

    def test_remove(self, queue):
        entry = queue.enqueue(EntityType.PRODUCTS, SyncOperation.CREATE, "p1", {"id": "p1"})
        assert queue.remove(entry.entry_id) is True
        assert queue.remove(entry.entry_id) is False
        assert len(queue) == 0

    def test_pending_for(self, queue):
        queue.enqueue(EntityType.PRODUCTS, SyncOperation.CREATE, "p1", {"id": "p1"})
        queue.enqueue(EntityType.QUOTES, SyncOperation.CREATE, "q1", {"id": "q1"})
        queue.enqueue(EntityType.PRODUCTS, SyncOperation.UPDATE, "p1", {"id": "p1"})
        assert queue.pending_for(EntityType.PRODUCTS) == 2
        assert queue.pending_for(EntityType.LOANS) == 0

    def test_listener_called_on_enqueue(self, queue):
        calls = []
        unsubscribe = queue.add_listener(lambda: calls.append(1))
        queue.enqueue(EntityType.BILLS, SyncOperation.CREATE, "b1", {"id": "b1"})
        unsubscribe()
        queue.enqueue(EntityType.BILLS, SyncOperation.CREATE, "b2", {"id": "b2"})
        assert calls == [1]

    def test_corrupt_storage_starts_empty(self):
        storage = MemoryLocalStorage({QUEUE_STORAGE_KEY: "{broken"})
        assert len(SyncQueue(storage)) == 0

    def test_malformed_entries_dropped(self):
        storage = MemoryLocalStorage({
            QUEUE_STORAGE_KEY: json.dumps([
                {"entity": "nonsense", "operation": "create", "entityId": "x"},
                {"entity": "bills", "operation": "create", "entityId": "b1", "payload": {"id": "b1"}},
            ])
        })
        queue = SyncQueue(storage)
        assert [e.entity_id for e in queue.entries()] == ["b1"]

    def test_write_failure_keeps_entry_in_memory(self, audit_logger):
        queue = SyncQueue(BrokenWriteStorage(), audit_logger)
        queue.enqueue(EntityType.BILLS, SyncOperation.CREATE, "b1", {"id": "b1"})
        assert len(queue) == 1
        assert any(
            e.event_type.value == "local_persistence_failed"
            for e in audit_logger.recent_events()
        )
