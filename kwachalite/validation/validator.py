"""
Record Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking, required fields, ranges, cross-field rules
- Done by the pydantic models themselves; a record that exists has passed it

STAGE 2 - SEMANTIC VALIDATION (this module):
- Checks that need the rest of the store (unknown clients, products, categories)
- Checks that depend on today's date (bills already overdue on entry)
- Suspicious values (amounts above the configured ceiling)

The view runs stage 2 before dispatching a record into the store and shows
the issues to the user. Warnings never block; errors should.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from kwachalite.config import get_settings
from kwachalite.models.finance import (
    ENTITY_MODELS,
    Bill,
    Category,
    Client,
    FinanceRecord,
    Loan,
    Quote,
    SavingsGoal,
    Transaction,
    ValidationIssue,
    ValidationResult,
)
from kwachalite.store import FinanceStore


_ENTITY_BY_MODEL = {model: entity for entity, model in ENTITY_MODELS.items()}


class RecordValidator:
    """
    Semantic checks for records about to enter the store.

    Reference checks are skipped when no store is given.
    """

    def __init__(
        self,
        store: Optional[FinanceStore] = None,
        max_amount: Optional[float] = None,
    ):
        self._store = store
        self._max_amount = Decimal(str(
            max_amount if max_amount is not None else get_settings().app.max_amount
        ))

    def _check_amount(self, field: str, amount: Decimal) -> list[ValidationIssue]:
        if amount > self._max_amount:
            return [ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            )]
        return []

    def _validate_transaction(self, txn: Transaction, today: date) -> list[ValidationIssue]:
        issues = self._check_amount("amount", txn.amount)

        if txn.date > today:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({txn.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if self._store is not None:
            categories = self._store.categories.for_workspace(txn.workspace)
            if txn.category_id is not None:
                known = any(c.id == txn.category_id for c in categories)
            else:
                known = any(c.name.lower() == txn.category.lower() for c in categories)
            if not known:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="unknown_reference",
                    message=f"Category '{txn.category}' does not exist in the {txn.workspace.value} workspace",
                    severity="warning",
                    suggested_fix="Pick an existing category or create it first",
                ))
        return issues

    def _validate_category(self, category: Category) -> list[ValidationIssue]:
        issues = []
        if category.budget is not None:
            issues.extend(self._check_amount("budget", category.budget))

        if self._store is not None:
            for existing in self._store.categories.for_workspace(category.workspace):
                if (
                    existing.id != category.id
                    and existing.type == category.type
                    and existing.name.lower() == category.name.lower()
                ):
                    issues.append(ValidationIssue(
                        field="name",
                        issue_type="duplicate",
                        message=f"A category named '{category.name}' already exists",
                        severity="warning",
                        suggested_fix="Use a different name or edit the existing category",
                    ))
                    break
        return issues

    def _validate_bill(self, bill: Bill, today: date, is_new: bool) -> list[ValidationIssue]:
        issues = self._check_amount("amount", bill.amount)
        if is_new and bill.due_date < today:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="past_date",
                message=f"Due date ({bill.due_date}) is already in the past",
                severity="warning",
                suggested_fix="Please verify the due date",
            ))
        return issues

    def _validate_loan(self, loan: Loan) -> list[ValidationIssue]:
        issues = self._check_amount("principal", loan.principal)
        if loan.remaining_amount > loan.principal:
            issues.append(ValidationIssue(
                field="remaining_amount",
                issue_type="inconsistent",
                message="Remaining amount cannot exceed principal",
                severity="error",
            ))
        return issues

    def _validate_goal(self, goal: SavingsGoal, today: date, is_new: bool) -> list[ValidationIssue]:
        issues = self._check_amount("target_amount", goal.target_amount)
        if goal.current_amount > goal.target_amount:
            issues.append(ValidationIssue(
                field="current_amount",
                issue_type="inconsistent",
                message="Current amount is above the target",
                severity="warning",
                suggested_fix="Raise the target or mark the goal as reached",
            ))
        if is_new and goal.deadline < today:
            issues.append(ValidationIssue(
                field="deadline",
                issue_type="past_date",
                message=f"Deadline ({goal.deadline}) is already in the past",
                severity="warning",
            ))
        return issues

    def _validate_client(self, client: Client) -> list[ValidationIssue]:
        if self._store is None:
            return []
        for existing in self._store.clients:
            if existing.id != client.id and existing.email.lower() == client.email.lower():
                return [ValidationIssue(
                    field="email",
                    issue_type="duplicate",
                    message=f"Another client already uses {client.email}",
                    severity="warning",
                )]
        return []

    def _validate_quote(self, quote: Quote) -> list[ValidationIssue]:
        issues = []
        if self._store is None:
            return issues

        if quote.client_id not in self._store.clients:
            issues.append(ValidationIssue(
                field="client_id",
                issue_type="unknown_reference",
                message=f"Client {quote.client_id} does not exist",
                severity="error",
                suggested_fix="Select an existing client",
            ))
        for idx, item in enumerate(quote.items):
            if item.product_id not in self._store.products:
                issues.append(ValidationIssue(
                    field=f"items[{idx}].product_id",
                    issue_type="unknown_reference",
                    message=f"Product {item.product_id} does not exist",
                    severity="error",
                    suggested_fix="Select an existing product",
                ))
        return issues

    def validate(
        self,
        record: FinanceRecord,
        is_new: bool = True,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run semantic validation on a record.

        Args:
            record: A record that already passed model validation
            is_new: False when validating an edit of an existing record
            today: Reference date (defaults to today)

        Returns:
            ValidationResult with all issues found
        """
        today = today or date.today()
        entity = _ENTITY_BY_MODEL.get(type(record))
        if entity is None:
            raise TypeError(f"Not a stored entity: {type(record).__name__}")

        if isinstance(record, Transaction):
            issues = self._validate_transaction(record, today)
        elif isinstance(record, Category):
            issues = self._validate_category(record)
        elif isinstance(record, Bill):
            issues = self._validate_bill(record, today, is_new)
        elif isinstance(record, Loan):
            issues = self._validate_loan(record)
        elif isinstance(record, SavingsGoal):
            issues = self._validate_goal(record, today, is_new)
        elif isinstance(record, Client):
            issues = self._validate_client(record)
        elif isinstance(record, Quote):
            issues = self._validate_quote(record)
        else:
            issues = []

        return ValidationResult(
            entity=entity,
            record_id=record.id,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to non-technical users.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ This record can't be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        lines.append("")
        if result.is_valid:
            lines.append("You can still save, but please review carefully.")
        else:
            lines.append("Please fix the issues above before continuing.")

        return "\n".join(lines)
