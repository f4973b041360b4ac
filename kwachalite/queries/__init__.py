"""Read-only summaries computed from the store."""

from kwachalite.queries.summaries import FinanceSummaries, budget_period

__all__ = ["FinanceSummaries", "budget_period"]
