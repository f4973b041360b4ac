"""
Tests for KwachaLite models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for the store and sync pipeline (with in-memory backends)
3. No real API calls in tests
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from kwachalite.models.finance import (
    Bill,
    BudgetFrequency,
    BudgetProgress,
    Category,
    Client,
    EntityType,
    Loan,
    Quote,
    QuoteItem,
    RecurringFrequency,
    SavingsGoal,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    Workspace,
    create_id,
)
from kwachalite.models.sync import (
    EntryState,
    SyncOperation,
    SyncQueueEntry,
    SyncStatus,
)
from kwachalite.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestFinanceModels:
    """Tests for entity Pydantic models."""

    def test_transaction_creation(self):
        """Test Transaction model creation with a generated id."""
        txn = Transaction(
            date=date(2024, 6, 1),
            description="Salary",
            amount=Decimal("250000.00"),
            type=TransactionType.INCOME,
            category="Salary",
        )
        assert txn.id
        assert txn.workspace == Workspace.PERSONAL
        assert txn.signed_amount == Decimal("250000.00")

    def test_transaction_expense_signed_amount(self):
        txn = Transaction(
            date=date(2024, 6, 1),
            description="Bus fare",
            amount=Decimal("800"),
            type=TransactionType.EXPENSE,
            category="Transport",
        )
        assert txn.signed_amount == Decimal("-800")

    def test_transaction_strips_whitespace(self):
        """Test that whitespace is stripped from the description."""
        txn = Transaction(
            date=date(2024, 6, 1),
            description="  Groceries  ",
            amount=Decimal("10"),
            type=TransactionType.EXPENSE,
            category="Groceries",
        )
        assert txn.description == "Groceries"

    def test_transaction_rejects_non_positive_amount(self):
        """Amounts are typed, never signed."""
        with pytest.raises(ValidationError):
            Transaction(
                date=date(2024, 6, 1),
                description="Refund",
                amount=Decimal("-100"),
                type=TransactionType.INCOME,
                category="Other",
            )

    def test_ids_are_unique(self):
        assert len({create_id() for _ in range(100)}) == 100

    def test_category_budget_defaults_to_monthly(self):
        category = Category(
            name="Transport",
            type=TransactionType.EXPENSE,
            budget=Decimal("30000"),
        )
        assert category.budget_frequency == BudgetFrequency.MONTHLY

    def test_income_category_rejects_budget(self):
        """Budgets apply only to expense categories."""
        with pytest.raises(ValidationError, match="Budgets apply only to expense categories"):
            Category(
                name="Salary",
                type=TransactionType.INCOME,
                budget=Decimal("1000"),
            )

    def test_bill_frequency_marks_recurring(self):
        bill = Bill(
            name="ESCOM",
            amount=Decimal("12000"),
            due_date=date(2024, 7, 1),
            recurring_frequency=RecurringFrequency.MONTHLY,
        )
        assert bill.is_recurring is True

    def test_loan_remaining_cannot_exceed_principal(self):
        with pytest.raises(ValidationError, match="Remaining amount cannot exceed principal"):
            Loan(
                lender="NBM",
                principal=Decimal("1000"),
                remaining_amount=Decimal("1500"),
                interest_rate=Decimal("18"),
                term=12,
                start_date=date(2024, 1, 1),
            )

    def test_savings_goal_defaults(self):
        goal = SavingsGoal(
            name="Laptop",
            target_amount=Decimal("900000"),
            deadline=date(2025, 1, 1),
        )
        assert goal.current_amount == Decimal("0")
        assert goal.items == []
        assert goal.find_item("missing") is None

    def test_client_requires_valid_email(self):
        with pytest.raises(ValidationError):
            Client(name="Chikondi Ltd", email="not-an-email")

    def test_quote_expiry_after_date(self):
        with pytest.raises(ValidationError, match="Expiry date must be after quote date"):
            Quote(
                quote_number="Q-001",
                client_id="c1",
                date=date(2024, 6, 10),
                expiry_date=date(2024, 6, 1),
                items=[QuoteItem(product_id="p1", quantity=Decimal("1"), price=Decimal("10"))],
            )

    def test_quote_requires_items(self):
        with pytest.raises(ValidationError):
            Quote(
                quote_number="Q-002",
                client_id="c1",
                date=date(2024, 6, 1),
                expiry_date=date(2024, 7, 1),
                items=[],
            )

    def test_quote_total(self):
        quote = Quote(
            quote_number="Q-003",
            client_id="c1",
            date=date(2024, 6, 1),
            expiry_date=date(2024, 7, 1),
            items=[
                QuoteItem(product_id="p1", quantity=Decimal("2"), price=Decimal("150.00")),
                QuoteItem(product_id="p2", quantity=Decimal("1"), price=Decimal("50.50")),
            ],
        )
        assert quote.total == Decimal("350.50")

    def test_payload_is_json_safe(self):
        txn = Transaction(
            date=date(2024, 6, 1),
            description="Airtime",
            amount=Decimal("500.00"),
            type=TransactionType.EXPENSE,
            category="Utilities",
        )
        payload = txn.to_payload()
        assert payload["date"] == "2024-06-01"
        assert payload["amount"] == "500.00"
        assert Transaction.model_validate(payload).model_dump() == txn.model_dump()


class TestSyncModels:
    """Tests for queue entries and status snapshots."""

    def test_entry_serializes_camel_case(self):
        entry = SyncQueueEntry(
            entity=EntityType.TRANSACTIONS,
            operation=SyncOperation.CREATE,
            entity_id="t1",
            payload={"id": "t1"},
        )
        data = entry.to_storage_dict()
        assert set(data) == {
            "entryId", "entity", "operation", "entityId", "payload",
            "enqueuedAt", "retryCount", "state", "lastError",
        }
        assert data["entity"] == "transactions"
        assert data["retryCount"] == 0

    def test_entry_loads_from_camel_case(self):
        entry_id = uuid4()
        entry = SyncQueueEntry.model_validate({
            "entryId": str(entry_id),
            "entity": "clients",
            "operation": "delete",
            "entityId": "c9",
            "payload": {"id": "c9"},
            "enqueuedAt": "2024-06-01T10:00:00+00:00",
            "retryCount": 3,
            "state": "in_flight",
        })
        assert entry.entry_id == entry_id
        assert entry.retry_count == 3
        assert entry.state == EntryState.IN_FLIGHT

    def test_status_unsaved_changes(self):
        assert SyncStatus(queue_length=2, is_online=True).has_unsaved_changes is True
        assert SyncStatus(queue_length=0, is_online=False).has_unsaved_changes is False

    def test_budget_progress_properties(self):
        progress = BudgetProgress(
            category_id="groceries",
            category_name="Groceries",
            frequency=BudgetFrequency.MONTHLY,
            period_start=date(2024, 6, 1),
            period_end=date(2024, 6, 30),
            budget=Decimal("500"),
            spent=Decimal("600"),
        )
        assert progress.over_budget is True
        assert progress.remaining == Decimal("0")
        assert progress.progress == pytest.approx(120.0)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            description="Created transactions record",
        )
        assert event.event_type == AuditEventType.ENTITY_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.SYNC_DELIVERED,
            description="Delivered create of transactions record",
            details={"operation": "create", "retry_count": 0},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "sync_delivered"
        assert log_dict["details"]["operation"] == "create"

    def test_audit_event_builder_entity_created(self):
        event = AuditEventBuilder.entity_created("transactions", "t1")
        assert event.event_type == AuditEventType.ENTITY_CREATED
        assert event.entity_id == "t1"
        assert event.is_user_action is True

    def test_audit_event_builder_delivery_failed(self):
        event = AuditEventBuilder.sync_delivery_failed(
            entity_type="clients",
            entity_id="c1",
            operation="update",
            retry_count=2,
            error_message="timeout",
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details["retry_count"] == 2
        assert event.error_message == "timeout"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            entity=EntityType.QUOTES,
            record_id="q1",
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="client_id",
                    issue_type="unknown_reference",
                    message="Client c1 does not exist",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            entity=EntityType.BILLS,
            record_id="b1",
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="due_date",
                    issue_type="past_date",
                    message="Due date is already in the past",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Due date is already in the past"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
