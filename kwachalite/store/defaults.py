"""Category set seeded into a fresh store."""

from decimal import Decimal

from kwachalite.models.finance import (
    BudgetFrequency,
    Category,
    TransactionType,
    Workspace,
)


_EXPENSE = TransactionType.EXPENSE
_INCOME = TransactionType.INCOME
_PERSONAL = Workspace.PERSONAL
_BUSINESS = Workspace.BUSINESS

# (id, name, color, type, workspace, monthly budget)
_DEFAULT_CATEGORY_ROWS = [
    # Personal expenses
    ("groceries", "Groceries", "chart-1", _EXPENSE, _PERSONAL, "75000"),
    ("transport", "Transport", "chart-2", _EXPENSE, _PERSONAL, "30000"),
    ("housing", "Housing", "chart-3", _EXPENSE, _PERSONAL, "150000"),
    ("food", "Food & Dining", "chart-4", _EXPENSE, _PERSONAL, "100000"),
    ("health", "Health", "chart-5", _EXPENSE, _PERSONAL, None),
    ("entertainment", "Entertainment", "chart-1", _EXPENSE, _PERSONAL, "50000"),
    ("education", "Education", "chart-2", _EXPENSE, _PERSONAL, None),
    ("gifts", "Gifts", "chart-4", _EXPENSE, _PERSONAL, None),
    # Personal income
    ("salary", "Salary", "chart-2", _INCOME, _PERSONAL, None),
    ("freelance_personal", "Freelance", "chart-2", _INCOME, _PERSONAL, None),
    ("investment", "Investment", "chart-2", _INCOME, _PERSONAL, None),
    ("side_hustle", "Side Hustle", "chart-2", _INCOME, _PERSONAL, None),
    # Business expenses
    ("office_supplies", "Office Supplies", "chart-1", _EXPENSE, _BUSINESS, "50000"),
    ("software", "Software & Subscriptions", "chart-2", _EXPENSE, _BUSINESS, "25000"),
    ("marketing", "Marketing", "chart-3", _EXPENSE, _BUSINESS, None),
    ("travel", "Business Travel", "chart-4", _EXPENSE, _BUSINESS, None),
    ("client_expenses", "Client Expenses", "chart-5", _EXPENSE, _BUSINESS, None),
    ("shipping", "Shipping & Delivery", "chart-1", _EXPENSE, _BUSINESS, None),
    # Business income
    ("client_payments", "Client Payments", "chart-2", _INCOME, _BUSINESS, None),
    ("product_sales", "Product Sales", "chart-2", _INCOME, _BUSINESS, None),
]


def default_categories() -> list[Category]:
    """Fresh copies of the default categories."""
    return [
        Category(
            id=category_id,
            name=name,
            color=color,
            type=category_type,
            workspace=workspace,
            budget=Decimal(budget) if budget else None,
            budget_frequency=BudgetFrequency.MONTHLY if budget else None,
        )
        for category_id, name, color, category_type, workspace, budget in _DEFAULT_CATEGORY_ROWS
    ]
