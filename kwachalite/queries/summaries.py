"""
Finance Summaries

DESIGN DECISION: Summaries are DETERMINISTIC and computed from what the
store actually holds. Nothing is cached; each call re-reads the store, so
a summary can never disagree with the records behind it.
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from kwachalite.models.finance import (
    BudgetFrequency,
    BudgetProgress,
    Category,
    GoalProgress,
    Loan,
    LoanProgress,
    Overview,
    SavingsGoal,
    Transaction,
    TransactionType,
    Workspace,
)
from kwachalite.store import FinanceStore


def budget_period(frequency: BudgetFrequency, today: date) -> tuple[date, date]:
    """
    Inclusive date range of the budget period containing `today`.

    Monthly budgets cover the calendar month; weekly budgets Monday to Sunday.
    """
    if frequency == BudgetFrequency.WEEKLY:
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def _percent(part: Decimal, whole: Decimal) -> float:
    if whole <= 0:
        return 0.0
    return float(part / whole * 100)


class FinanceSummaries:
    """
    Read-only aggregates over a FinanceStore.

    GUARANTEES:
    - Only uses records present in the store
    - Empty workspaces produce zero totals, never errors
    """

    def __init__(self, store: FinanceStore):
        self._store = store

    def overview(self, workspace: Workspace = Workspace.PERSONAL) -> Overview:
        """Total income and expenses for a workspace."""
        income = Decimal("0")
        expenses = Decimal("0")
        for txn in self._store.transactions.for_workspace(workspace):
            if txn.type == TransactionType.INCOME:
                income += txn.amount
            else:
                expenses += txn.amount
        return Overview(
            workspace=workspace,
            total_income=income,
            total_expenses=expenses,
        )

    def _spent(
        self,
        category: Category,
        transactions: list[Transaction],
        start: date,
        end: date,
    ) -> Decimal:
        spent = Decimal("0")
        for txn in transactions:
            if txn.type != TransactionType.EXPENSE or not (start <= txn.date <= end):
                continue
            if txn.category_id is not None:
                matches = txn.category_id == category.id
            else:
                matches = txn.category.lower() == category.name.lower()
            if matches:
                spent += txn.amount
        return spent

    def budget_progress(
        self,
        workspace: Workspace = Workspace.PERSONAL,
        today: Optional[date] = None,
    ) -> list[BudgetProgress]:
        """Spending against every budgeted expense category in the current period."""
        today = today or date.today()
        transactions = self._store.transactions.for_workspace(workspace)

        results = []
        for category in self._store.categories.for_workspace(workspace):
            if category.type != TransactionType.EXPENSE or category.budget is None:
                continue
            frequency = category.budget_frequency or BudgetFrequency.MONTHLY
            start, end = budget_period(frequency, today)
            results.append(BudgetProgress(
                category_id=category.id,
                category_name=category.name,
                frequency=frequency,
                period_start=start,
                period_end=end,
                budget=category.budget,
                spent=self._spent(category, transactions, start, end),
            ))
        return results

    def goal_progress(self, goal: SavingsGoal) -> GoalProgress:
        return GoalProgress(
            goal_id=goal.id,
            name=goal.name,
            current_amount=goal.current_amount,
            target_amount=goal.target_amount,
            progress=min(100.0, _percent(goal.current_amount, goal.target_amount)),
            is_complete=goal.current_amount >= goal.target_amount,
            items_purchased=sum(1 for item in goal.items if item.purchased),
            items_total=len(goal.items),
        )

    def loan_progress(self, loan: Loan) -> LoanProgress:
        paid = loan.principal - loan.remaining_amount
        return LoanProgress(
            loan_id=loan.id,
            lender=loan.lender,
            principal=loan.principal,
            paid_amount=paid,
            progress=_percent(paid, loan.principal),
            status=loan.status,
        )

    def all_goal_progress(self, workspace: Workspace = Workspace.PERSONAL) -> list[GoalProgress]:
        return [self.goal_progress(goal) for goal in self._store.savings_goals.for_workspace(workspace)]

    def all_loan_progress(self, workspace: Workspace = Workspace.PERSONAL) -> list[LoanProgress]:
        return [self.loan_progress(loan) for loan in self._store.loans.for_workspace(workspace)]
