"""
Data Models Package

This package contains all Pydantic models used in KwachaLite.
All data flowing through the store and the sync queue must conform to these schemas.
"""

from kwachalite.models.finance import (
    ENTITY_MODELS,
    Bill,
    BillStatus,
    BudgetFrequency,
    BudgetProgress,
    Category,
    Client,
    EntityType,
    FinanceRecord,
    GoalItem,
    GoalProgress,
    GoalType,
    GroupMember,
    Loan,
    LoanProgress,
    LoanStatus,
    Overview,
    Product,
    Quote,
    QuoteItem,
    QuoteStatus,
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
    DrainReport,
    EntryState,
    MutationOutcome,
    MutationResult,
    SyncOperation,
    SyncQueueEntry,
    SyncState,
    SyncStatus,
)
from kwachalite.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "ENTITY_MODELS",
    "Bill",
    "BillStatus",
    "BudgetFrequency",
    "BudgetProgress",
    "Category",
    "Client",
    "EntityType",
    "FinanceRecord",
    "GoalItem",
    "GoalProgress",
    "GoalType",
    "GroupMember",
    "Loan",
    "LoanProgress",
    "LoanStatus",
    "Overview",
    "Product",
    "Quote",
    "QuoteItem",
    "QuoteStatus",
    "RecurringFrequency",
    "SavingsGoal",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "Workspace",
    "create_id",
    # Sync models
    "DrainReport",
    "EntryState",
    "MutationOutcome",
    "MutationResult",
    "SyncOperation",
    "SyncQueueEntry",
    "SyncState",
    "SyncStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
