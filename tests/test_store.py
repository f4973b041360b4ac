"""Tests for the local-first store."""

import json
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from kwachalite.models.audit import AuditEventType
from kwachalite.models.finance import (
    Bill,
    BillStatus,
    BudgetFrequency,
    EntityType,
    GoalItem,
    Loan,
    LoanStatus,
    SavingsGoal,
    TransactionType,
    Workspace,
)
from kwachalite.models.sync import MutationOutcome, SyncOperation
from kwachalite.services.local import LocalPersistenceError, MemoryLocalStorage
from kwachalite.store import FinanceStore, Preferences, default_categories
from kwachalite.sync import SyncQueue

from conftest import make_category, make_transaction


class FailingWrites(MemoryLocalStorage):
    """Storage that refuses writes to selected keys."""

    def __init__(self, failing_keys):
        super().__init__()
        self.failing_keys = set(failing_keys)

    def set_item(self, key: str, value: str) -> None:
        if key in self.failing_keys:
            raise LocalPersistenceError(key, "quota exceeded")
        super().set_item(key, value)


def make_goal(**kwargs) -> SavingsGoal:
    return SavingsGoal(
        name=kwargs.pop("name", "Solar panel"),
        target_amount=Decimal(kwargs.pop("target", "300000")),
        deadline=date(2025, 6, 1),
        **kwargs,
    )


def make_loan(**kwargs) -> Loan:
    return Loan(
        lender="FDH Bank",
        principal=Decimal("100000"),
        remaining_amount=Decimal(kwargs.pop("remaining", "100000")),
        interest_rate=Decimal("24"),
        term=12,
        start_date=date(2024, 1, 1),
        **kwargs,
    )


class TestCollectionMutations:
    """Tests for add/update/delete on a collection."""

    def test_add_appends_persists_and_queues(self, storage, store):
        first = store.transactions.add(make_transaction("A"))
        second = store.transactions.add(make_transaction("B"))

        assert first.applied and first.persisted
        assert [t.description for t in store.transactions.all()] == ["A", "B"]
        saved = json.loads(storage.get_item("transactions"))
        assert [row["id"] for row in saved] == [first.entity_id, second.entity_id]

        entries = store.queue.entries()
        assert [e.operation for e in entries] == [SyncOperation.CREATE] * 2
        assert entries[0].payload == first.record.to_payload()

    def test_add_duplicate_id_replaces_in_place(self, store, audit_logger):
        original = make_transaction("A")
        store.transactions.add(original)
        store.transactions.add(make_transaction("B"))
        duplicate = make_transaction("A2", id=original.id)

        result = store.transactions.add(duplicate)

        assert result.applied
        assert [t.description for t in store.transactions.all()] == ["A2", "B"]
        assert any(
            e.event_type == AuditEventType.DUPLICATE_ID_REPLACED
            for e in audit_logger.recent_events()
        )

    def test_update_queues_full_record(self, store):
        category = make_category("Transport", budget="30000")
        store.categories.add(category)

        category.color = "chart-2"
        result = store.categories.update(category)

        assert result.outcome == MutationOutcome.APPLIED
        entry = store.queue.entries()[-1]
        assert entry.operation == SyncOperation.UPDATE
        assert entry.payload["name"] == "Transport"
        assert entry.payload["color"] == "chart-2"
        assert entry.payload["budget"] == "30000"

    def test_update_missing_id_is_not_found(self, store):
        result = store.transactions.update(make_transaction("ghost"))
        assert result.not_found
        assert len(store.queue) == 0
        assert len(store.transactions) == 0

    def test_delete(self, storage, store):
        result = store.transactions.add(make_transaction("A"))
        deleted = store.transactions.delete(result.entity_id)

        assert deleted.applied
        assert store.transactions.get(result.entity_id) is None
        assert json.loads(storage.get_item("transactions")) == []
        entry = store.queue.entries()[-1]
        assert entry.operation == SyncOperation.DELETE
        assert entry.payload == {"id": result.entity_id}

    def test_delete_missing_id_is_not_found(self, store, audit_logger):
        result = store.clients.delete("missing")
        assert result.not_found
        assert len(store.queue) == 0
        assert audit_logger.recent_events()[0].event_type == AuditEventType.ENTITY_NOT_FOUND

    def test_returned_records_are_copies(self, store):
        result = store.transactions.add(make_transaction("A"))
        fetched = store.transactions.get(result.entity_id)
        fetched.description = "changed behind the store's back"
        assert store.transactions.get(result.entity_id).description == "A"

    def test_wrong_record_type_rejected(self, store):
        with pytest.raises(TypeError):
            store.categories.add(make_transaction("A"))

    def test_for_workspace(self, store):
        store.transactions.add(make_transaction("home"))
        store.transactions.add(make_transaction("office", workspace=Workspace.BUSINESS))
        business = store.transactions.for_workspace(Workspace.BUSINESS)
        assert [t.description for t in business] == ["office"]

    def test_generic_dispatch(self, store):
        result = store.add(make_loan())
        assert result.entity == EntityType.LOANS
        assert store.delete(EntityType.LOANS, result.entity_id).applied


class TestPersistence:
    """Tests for loading and local storage failures."""

    def test_reload_restores_collections(self, storage, store):
        store.transactions.add(make_transaction("A"))
        store.loans.add(make_loan())

        rebuilt = FinanceStore(storage, SyncQueue(storage), seed_default_categories=False)

        assert [t.description for t in rebuilt.transactions] == ["A"]
        assert len(rebuilt.loans) == 1
        assert len(rebuilt.queue) == 2

    def test_write_failure_keeps_memory_and_queue(self, audit_logger):
        storage = FailingWrites({"transactions"})
        store = FinanceStore(storage, SyncQueue(storage), audit_logger, seed_default_categories=False)

        result = store.transactions.add(make_transaction("A"))

        assert result.applied
        assert result.persisted is False
        assert len(store.transactions) == 1
        assert len(store.queue) == 1
        assert any(
            e.event_type == AuditEventType.LOCAL_PERSISTENCE_FAILED
            for e in audit_logger.recent_events()
        )

    def test_corrupt_collection_starts_empty(self):
        storage = MemoryLocalStorage({"bills": "not json"})
        store = FinanceStore(storage, SyncQueue(storage), seed_default_categories=False)
        assert len(store.bills) == 0

    def test_default_categories_seeded_once(self, storage, queue):
        store = FinanceStore(storage, queue, seed_default_categories=True)
        assert len(store.categories) == len(default_categories())
        assert store.categories.get("groceries").budget == Decimal("75000")
        assert len(queue) == len(default_categories())
        assert {e.operation for e in queue.entries()} == {SyncOperation.CREATE}

        store.categories.delete("gifts")
        rebuilt = FinanceStore(storage, SyncQueue(storage), seed_default_categories=True)
        assert "gifts" not in rebuilt.categories
        assert len(rebuilt.categories) == len(default_categories()) - 1

    def test_default_budgets_only_on_expenses(self):
        for category in default_categories():
            if category.budget is not None:
                assert category.type == TransactionType.EXPENSE


class TestDomainActions:
    """Tests for contributions, payments and budget changes."""

    def test_contribute_to_goal(self, store):
        goal = make_goal()
        store.savings_goals.add(goal)

        store.contribute_to_goal(goal.id, Decimal("1000"))
        result = store.contribute_to_goal(goal.id, Decimal("250.50"))

        assert result.applied
        assert store.savings_goals.get(goal.id).current_amount == Decimal("1250.50")
        assert [e.operation for e in store.queue.entries()] == [
            SyncOperation.CREATE, SyncOperation.UPDATE, SyncOperation.UPDATE,
        ]

    def test_contribute_rejects_non_positive(self, store):
        goal = make_goal()
        store.savings_goals.add(goal)
        with pytest.raises(ValueError):
            store.contribute_to_goal(goal.id, Decimal("0"))

    def test_contribute_to_missing_goal(self, store):
        assert store.contribute_to_goal("nope", Decimal("10")).not_found

    def test_purchase_goal_item(self, store):
        item = GoalItem(name="Inverter", price=Decimal("120000"))
        goal = make_goal(items=[item])
        store.savings_goals.add(goal)

        store.purchase_goal_item(goal.id, item.id)
        again = store.purchase_goal_item(goal.id, item.id)

        saved = store.savings_goals.get(goal.id)
        assert saved.find_item(item.id).purchased is True
        assert saved.current_amount == Decimal("120000")
        # The second purchase changed nothing and queued nothing
        assert again.entry_id is None
        assert len(store.queue) == 2

    def test_current_amount_not_recomputed_from_items(self, store):
        item = GoalItem(name="Battery", price=Decimal("80000"), purchased=True)
        goal = make_goal(items=[item])
        store.savings_goals.add(goal)
        store.contribute_to_goal(goal.id, Decimal("100"))
        assert store.savings_goals.get(goal.id).current_amount == Decimal("100")

    def test_mark_bill_paid(self, store):
        bill = Bill(name="Water Board", amount=Decimal("8000"), due_date=date(2024, 7, 5))
        store.bills.add(bill)
        store.mark_bill_paid(bill.id)
        assert store.bills.get(bill.id).status == BillStatus.PAID

    def test_record_loan_payment(self, store):
        loan = make_loan(remaining="1000")
        store.loans.add(loan)

        store.record_loan_payment(loan.id, Decimal("400"))
        assert store.loans.get(loan.id).remaining_amount == Decimal("600")
        assert store.loans.get(loan.id).status == LoanStatus.ACTIVE

        store.record_loan_payment(loan.id, Decimal("600"))
        assert store.loans.get(loan.id).status == LoanStatus.PAID

    def test_loan_overpayment_rejected(self, store):
        loan = make_loan(remaining="100")
        store.loans.add(loan)
        with pytest.raises(ValueError, match="exceeds remaining amount"):
            store.record_loan_payment(loan.id, Decimal("101"))

    def test_set_category_budget(self, store):
        category = make_category("Airtime")
        store.categories.add(category)

        store.set_category_budget(category.id, Decimal("5000"), BudgetFrequency.WEEKLY)
        saved = store.categories.get(category.id)
        assert saved.budget == Decimal("5000")
        assert saved.budget_frequency == BudgetFrequency.WEEKLY

        store.set_category_budget(category.id, None)
        assert store.categories.get(category.id).budget is None

    def test_budget_on_income_category_rejected(self, store):
        category = make_category("Salary", type=TransactionType.INCOME)
        store.categories.add(category)
        with pytest.raises(ValidationError):
            store.set_category_budget(category.id, Decimal("100"))
        assert len(store.queue) == 1


class TestReplaceCollection:
    """Tests for refreshing a collection from remote rows."""

    def test_replaces_when_nothing_pending(self, store, audit_logger):
        remote = make_transaction("from server").to_payload()
        assert store.replace_collection(EntityType.TRANSACTIONS, [remote]) is True
        assert [t.description for t in store.transactions] == ["from server"]
        assert len(store.queue) == 0

    def test_skipped_while_changes_pending(self, store):
        store.transactions.add(make_transaction("local edit"))
        remote = make_transaction("from server").to_payload()

        assert store.replace_collection(EntityType.TRANSACTIONS, [remote]) is False
        assert [t.description for t in store.transactions] == ["local edit"]

    def test_invalid_rows_dropped(self, store):
        good = make_transaction("ok").to_payload()
        assert store.replace_collection(EntityType.TRANSACTIONS, [good, {"id": "x"}])
        assert len(store.transactions) == 1


class TestPreferences:
    def test_defaults(self, storage):
        prefs = Preferences(storage, default_currency="MWK")
        assert prefs.currency == "MWK"
        assert prefs.workspace == Workspace.PERSONAL

    def test_currency_persisted(self, storage):
        Preferences(storage).set_currency("zar")
        assert storage.get_item("kwachalite-currency") == "ZAR"
        assert Preferences(storage).currency == "ZAR"

    def test_unsupported_currency_rejected(self, storage):
        with pytest.raises(ValueError, match="Unsupported currency"):
            Preferences(storage).set_currency("XYZ")

    def test_workspace_persisted(self, storage):
        Preferences(storage).set_workspace(Workspace.BUSINESS)
        saved = json.loads(storage.get_item("active-workspace-storage"))
        assert saved["state"]["activeWorkspace"] == "business"
        assert Preferences(storage).workspace == Workspace.BUSINESS
