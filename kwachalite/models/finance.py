"""
Core Data Models for KwachaLite

These models define the strict schemas for every entity the store holds.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable to local storage and to the remote backend
4. Reject bad records before they ever reach the store

DESIGN DECISION: Ids are generated on the client (random UUID4) so that a
record can be created offline and later upserted remotely under the same id.
A retried create is then indistinguishable from an update.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    model_validator,
)


def create_id() -> str:
    """Generate a client-side record id. Ids are never reused."""
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Workspace(str, Enum):
    """Partition of records into personal and business scopes."""
    PERSONAL = "personal"
    BUSINESS = "business"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class BudgetFrequency(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"


class BillStatus(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"


class RecurringFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    PAID = "paid"


class GoalType(str, Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class EntityType(str, Enum):
    """
    Entity collections held by the store.

    The value doubles as the local storage key and the remote table name.
    """
    TRANSACTIONS = "transactions"
    CATEGORIES = "categories"
    BILLS = "bills"
    LOANS = "loans"
    SAVINGS_GOALS = "savings_goals"
    CLIENTS = "clients"
    PRODUCTS = "products"
    QUOTES = "quotes"


# =============================================================================
# ENTITY MODELS
# =============================================================================

class FinanceRecord(BaseModel):
    """
    Base for every stored entity.

    The id is unique within its collection and assigned on the client.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=create_id,
        max_length=64,
        description="Client-generated unique id"
    )

    def to_payload(self) -> dict:
        """Full JSON-safe representation, used for local storage and sync payloads."""
        return self.model_dump(mode="json")


class Transaction(FinanceRecord):
    """
    A single income or expense.

    DESIGN DECISION: Amounts are typed, not signed. The amount is always
    positive and `type` says which way the money moved.
    """

    date: date
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was for"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Positive amount"
    )
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Category name"
    )
    category_id: Optional[str] = Field(
        default=None,
        description="Category id when the transaction was filed against a known category"
    )
    workspace: Workspace = Workspace.PERSONAL

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == TransactionType.INCOME else -self.amount


class Category(FinanceRecord):
    """
    Income or expense category, optionally carrying a budget.

    CRITICAL: Budgets apply only to expense categories.
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
    )
    type: TransactionType
    workspace: Workspace = Workspace.PERSONAL
    color: Optional[str] = None
    budget: Optional[Decimal] = Field(
        default=None,
        gt=0,
        decimal_places=2,
        description="Budget amount per period"
    )
    budget_frequency: Optional[BudgetFrequency] = None

    @model_validator(mode='after')
    def validate_budget(self) -> 'Category':
        """Budgets only make sense on expense categories."""
        if self.budget is not None:
            if self.type == TransactionType.INCOME:
                raise ValueError("Budgets apply only to expense categories")
            if self.budget_frequency is None:
                self.budget_frequency = BudgetFrequency.MONTHLY
        return self


class Bill(FinanceRecord):
    """A bill to be paid, optionally recurring."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    due_date: date
    status: BillStatus = BillStatus.UNPAID
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    workspace: Workspace = Workspace.PERSONAL

    @model_validator(mode='after')
    def validate_recurrence(self) -> 'Bill':
        if self.recurring_frequency is not None:
            self.is_recurring = True
        return self


class Loan(FinanceRecord):
    """A loan being repaid."""

    lender: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    principal: Decimal = Field(..., gt=0, decimal_places=2)
    remaining_amount: Decimal = Field(..., ge=0, decimal_places=2)
    interest_rate: Decimal = Field(
        ...,
        ge=0,
        le=100,
        description="Annual interest rate in percent"
    )
    term: int = Field(
        ...,
        gt=0,
        description="Loan term in months"
    )
    start_date: date
    status: LoanStatus = LoanStatus.ACTIVE
    workspace: Workspace = Workspace.PERSONAL

    @model_validator(mode='after')
    def validate_amounts(self) -> 'Loan':
        if self.remaining_amount > self.principal:
            raise ValueError("Remaining amount cannot exceed principal")
        return self


class GoalItem(BaseModel):
    """Shopping-list entry attached to a savings goal."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=create_id)
    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., gt=0, decimal_places=2)
    purchased: bool = False


class GroupMember(BaseModel):
    """Member of a group savings goal."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=create_id)
    name: str = Field(..., min_length=1, max_length=100)
    contribution: Decimal = Field(default=Decimal("0"), ge=0)
    joined_at: datetime = Field(default_factory=utcnow)


class SavingsGoal(FinanceRecord):
    """
    A savings goal.

    CRITICAL: `current_amount` is only adjusted by explicit contributions
    or item purchases. It is never recomputed from `items`.
    """

    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(..., gt=0, decimal_places=2)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    deadline: date
    type: GoalType = GoalType.INDIVIDUAL
    items: list[GoalItem] = Field(default_factory=list)
    members: list[GroupMember] = Field(default_factory=list)
    workspace: Workspace = Workspace.PERSONAL

    def find_item(self, item_id: str) -> Optional[GoalItem]:
        return next((item for item in self.items if item.id == item_id), None)


class Client(FinanceRecord):
    """A business client."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(default=None, min_length=10, max_length=30)
    address: Optional[str] = Field(default=None, max_length=200)
    company: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=1000)


class Product(FinanceRecord):
    """A product or service that can be quoted."""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    price: Decimal = Field(..., gt=0, decimal_places=2)
    cost_price: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)


class QuoteItem(BaseModel):
    """A quotation line referencing a product."""

    product_id: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0)
    price: Decimal = Field(..., gt=0, decimal_places=2)

    @property
    def total(self) -> Decimal:
        return self.quantity * self.price


class Quote(FinanceRecord):
    """A quotation sent to a client."""

    quote_number: str = Field(..., min_length=1, max_length=50)
    client_id: str = Field(..., min_length=1)
    date: date
    expiry_date: date
    items: list[QuoteItem] = Field(..., min_length=1)
    status: QuoteStatus = QuoteStatus.DRAFT

    @model_validator(mode='after')
    def validate_dates(self) -> 'Quote':
        if self.expiry_date <= self.date:
            raise ValueError("Expiry date must be after quote date")
        return self

    @property
    def total(self) -> Decimal:
        return sum((item.total for item in self.items), Decimal("0"))


ENTITY_MODELS: dict[EntityType, type[FinanceRecord]] = {
    EntityType.TRANSACTIONS: Transaction,
    EntityType.CATEGORIES: Category,
    EntityType.BILLS: Bill,
    EntityType.LOANS: Loan,
    EntityType.SAVINGS_GOALS: SavingsGoal,
    EntityType.CLIENTS: Client,
    EntityType.PRODUCTS: Product,
    EntityType.QUOTES: Quote,
}


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'past_date', 'unknown_reference', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of semantic validation of a record before it reaches the store."""

    validation_id: UUID = Field(default_factory=uuid4)
    validated_at: datetime = Field(default_factory=utcnow)
    entity: EntityType
    record_id: str

    is_valid: bool = Field(
        ...,
        description="True when there are no error-level issues"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# SUMMARY MODELS
# =============================================================================

class Overview(BaseModel):
    """Income and expense totals for one workspace."""

    workspace: Workspace
    total_income: Decimal
    total_expenses: Decimal

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expenses


class BudgetProgress(BaseModel):
    """Spending against one expense category's budget for the current period."""

    category_id: str
    category_name: str
    frequency: BudgetFrequency
    period_start: date
    period_end: date
    budget: Decimal
    spent: Decimal

    @property
    def remaining(self) -> Decimal:
        return max(Decimal("0"), self.budget - self.spent)

    @property
    def progress(self) -> float:
        return float(self.spent / self.budget * 100)

    @property
    def over_budget(self) -> bool:
        return self.spent > self.budget


class GoalProgress(BaseModel):
    goal_id: str
    name: str
    current_amount: Decimal
    target_amount: Decimal
    progress: float
    is_complete: bool
    items_purchased: int
    items_total: int


class LoanProgress(BaseModel):
    loan_id: str
    lender: str
    principal: Decimal
    paid_amount: Decimal
    progress: float
    status: LoanStatus
