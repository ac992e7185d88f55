"""Analytics over the monthly ledger."""

from budget_ledger.analytics.engine import (
    best_and_worst_month,
    budget_score,
    build_insights,
    category_breakdown,
    month_over_month_trend,
    monthly_history,
    recommendations,
    savings_rate,
    score_for_rate,
    top_expenses,
    totals_across_months,
)

__all__ = [
    "best_and_worst_month",
    "budget_score",
    "build_insights",
    "category_breakdown",
    "month_over_month_trend",
    "monthly_history",
    "recommendations",
    "savings_rate",
    "score_for_rate",
    "top_expenses",
    "totals_across_months",
]
