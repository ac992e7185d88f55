"""
Analytics Engine

Pure functions deriving statistics from a Ledger. None of them mutate
their input. Months are always visited in chronological key order, so
results are deterministic for a given Ledger.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Optional

from budget_ledger.formatting import format_currency
from budget_ledger.models.category import CATEGORIES, Category, get_category
from budget_ledger.models.insights import (
    BestWorstMonths,
    CategoryShare,
    InsightsReport,
    LedgerTotals,
    MonthSavings,
    MonthSummary,
    RankedExpense,
    Recommendation,
    RecommendationKind,
    SpendingTrend,
)
from budget_ledger.models.ledger import ZERO, MonthRecord

LedgerView = Mapping[str, MonthRecord]

# (minimum savings rate in percent, score), checked top to bottom
SCORE_TIERS: tuple[tuple[float, float], ...] = (
    (30.0, 100.0),
    (20.0, 90.0),
    (10.0, 75.0),
    (5.0, 60.0),
    (0.0, 50.0),
)

LOW_SAVINGS_RATE = 10.0
GOOD_SAVINGS_RATE = 20.0
CONCENTRATION_PERCENT = 40.0
SPIKE_PERCENT = 15.0
DROP_PERCENT = -10.0
HIGH_SCORE = 90.0
LOW_SCORE = 50.0


def _chronological(ledger: LedgerView) -> list[tuple[str, MonthRecord]]:
    return [(key, ledger[key]) for key in sorted(ledger)]


def totals_across_months(ledger: LedgerView) -> LedgerTotals:
    total_income = ZERO
    total_expenses = ZERO
    for _, record in _chronological(ledger):
        total_income += record.income
        total_expenses += record.total_expenses

    month_count = len(ledger)
    return LedgerTotals(
        total_income=total_income,
        total_expenses=total_expenses,
        total_saved=total_income - total_expenses,
        avg_income=total_income / month_count if month_count else ZERO,
        avg_expenses=total_expenses / month_count if month_count else ZERO,
        month_count=month_count,
    )


def best_and_worst_month(ledger: LedgerView) -> BestWorstMonths:
    """Rank months with positive income by amount saved."""
    months = [
        MonthSavings(
            month=key,
            income=record.income,
            expenses=record.total_expenses,
            saved=record.remaining,
        )
        for key, record in _chronological(ledger)
        if record.income > 0
    ]
    if not months:
        return BestWorstMonths()

    ranked = sorted(months, key=lambda m: m.saved, reverse=True)
    return BestWorstMonths(best=ranked[0], worst=ranked[-1])


def category_breakdown(
    ledger: LedgerView,
    categories: Iterable[Category] = CATEGORIES,
) -> list[CategoryShare]:
    """All-time spending per category, largest first, spending-only."""
    categories = list(categories)
    totals = {category.id: ZERO for category in categories}
    total_spending = ZERO
    for _, record in _chronological(ledger):
        for expense in record.expenses:
            if expense.category not in totals:
                continue
            totals[expense.category] += expense.amount
            total_spending += expense.amount

    shares = [
        CategoryShare(
            id=category.id,
            name=category.name,
            color=category.color,
            total=totals[category.id],
            percentage=(
                float(totals[category.id] * 100 / total_spending)
                if total_spending > 0 else 0.0
            ),
        )
        for category in categories
        if totals[category.id] > 0
    ]
    return sorted(shares, key=lambda share: share.total, reverse=True)


def top_expenses(ledger: LedgerView, n: int = 5) -> list[RankedExpense]:
    """The n largest expenses of all time. Ties keep month, then entry, order."""
    flattened = [
        RankedExpense(
            expense=expense,
            month=key,
            category_name=_category_name(expense.category),
        )
        for key, record in _chronological(ledger)
        for expense in record.expenses
    ]
    flattened.sort(key=lambda ranked: ranked.expense.amount, reverse=True)
    return flattened[:max(n, 0)]


def _category_name(category_id) -> str:
    try:
        return get_category(category_id).name
    except KeyError:
        return "Other"


def savings_rate(ledger: LedgerView) -> float:
    """Percent of all-time income that was not spent. 0 without income."""
    totals = totals_across_months(ledger)
    if totals.total_income == 0:
        return 0.0
    return float(totals.total_saved * 100 / totals.total_income)


def score_for_rate(rate: float) -> float:
    """Map a savings rate to a 0-100 score, non-decreasing in the rate."""
    for minimum, score in SCORE_TIERS:
        if rate >= minimum:
            return score
    return max(0.0, 50.0 + rate)


def budget_score(ledger: LedgerView) -> float:
    if totals_across_months(ledger).total_income == 0:
        return 0.0
    return score_for_rate(savings_rate(ledger))


def month_over_month_trend(
    ledger: LedgerView,
    current_key: str,
) -> Optional[SpendingTrend]:
    """
    Compare the current month's spending with the previous known month.

    None when fewer than two months are known, when current_key is not a
    known month or is the earliest one, or when the previous month spent
    nothing.
    """
    months = sorted(ledger)
    if len(months) < 2 or current_key not in ledger:
        return None
    index = months.index(current_key)
    if index == 0:
        return None

    current = ledger[current_key].total_expenses
    previous = ledger[months[index - 1]].total_expenses
    if previous == 0:
        return None

    change = float((current - previous) * 100 / previous)
    return SpendingTrend(
        current=current,
        previous=previous,
        change_percent=change,
        is_increase=change > 0,
    )


def recommendations(
    ledger: LedgerView,
    categories: Iterable[Category] = CATEGORIES,
    trend: Optional[SpendingTrend] = None,
    score: float = 0.0,
    currency_symbol: str = "$",
) -> list[Recommendation]:
    """Advisory messages, each rule evaluated independently, in fixed order."""
    advice: list[Recommendation] = []

    rate = savings_rate(ledger)
    if rate < LOW_SAVINGS_RATE:
        advice.append(Recommendation(
            kind=RecommendationKind.WARNING,
            title="Boost Your Savings",
            message=(
                f"You're saving {rate:.1f}% of your income. "
                "Try to reach 20% by cutting one category by 10%."
            ),
        ))
    elif rate >= GOOD_SAVINGS_RATE:
        advice.append(Recommendation(
            kind=RecommendationKind.SUCCESS,
            title="Great Savings Rate!",
            message=(
                f"You're saving {rate:.1f}% of your income. "
                "You're ahead of the average!"
            ),
        ))

    breakdown = category_breakdown(ledger, categories)
    if breakdown and breakdown[0].percentage > CONCENTRATION_PERCENT:
        top = breakdown[0]
        advice.append(Recommendation(
            kind=RecommendationKind.WARNING,
            title="High Category Spending",
            message=(
                f"{top.name} is {top.percentage:.0f}% of your spending. "
                "Consider setting a lower limit."
            ),
        ))

    recurring = [
        expense
        for _, record in _chronological(ledger)
        for expense in record.expenses
        if expense.is_recurring
    ]
    if recurring:
        recurring_total = sum((expense.amount for expense in recurring), ZERO)
        average = recurring_total / len(ledger)
        advice.append(Recommendation(
            kind=RecommendationKind.INFO,
            title="Recurring Expenses",
            message=(
                f"You have {len(recurring)} recurring expenses averaging "
                f"{format_currency(average, currency_symbol)}/month. "
                "Review subscriptions regularly!"
            ),
        ))

    if trend is not None and trend.is_increase and trend.change_percent > SPIKE_PERCENT:
        advice.append(Recommendation(
            kind=RecommendationKind.WARNING,
            title="Spending Spike Detected",
            message=(
                f"Your spending increased {trend.change_percent:.0f}% this month. "
                "Check if this was planned or needs adjustment."
            ),
        ))
    elif trend is not None and not trend.is_increase and trend.change_percent < DROP_PERCENT:
        advice.append(Recommendation(
            kind=RecommendationKind.SUCCESS,
            title="Great Progress!",
            message=(
                f"You reduced spending by {abs(trend.change_percent):.0f}% this month. "
                "Keep it up!"
            ),
        ))

    if score >= HIGH_SCORE:
        advice.append(Recommendation(
            kind=RecommendationKind.SUCCESS,
            title="Budget Master!",
            message=(
                f"Your budget score is {round(score)}/100. You're doing amazing! "
                "Consider investing your savings."
            ),
        ))
    elif score < LOW_SCORE:
        advice.append(Recommendation(
            kind=RecommendationKind.WARNING,
            title="Room for Improvement",
            message=(
                f"Your budget score is {round(score)}/100. "
                "Focus on reducing one major expense category this month."
            ),
        ))

    return advice


def monthly_history(ledger: LedgerView, limit: int = 6) -> list[MonthSummary]:
    """Income, spending and remainder of the last `limit` known months."""
    history = [
        MonthSummary(
            month=key,
            income=record.income,
            expenses=record.total_expenses,
            remaining=record.remaining,
        )
        for key, record in _chronological(ledger)
    ]
    return history[-limit:] if limit > 0 else []


def build_insights(
    ledger: LedgerView,
    current_key: str,
    categories: Iterable[Category] = CATEGORIES,
    top_n: int = 5,
    currency_symbol: str = "$",
) -> InsightsReport:
    categories = list(categories)
    trend = month_over_month_trend(ledger, current_key)
    score = budget_score(ledger)
    return InsightsReport(
        totals=totals_across_months(ledger),
        best_and_worst=best_and_worst_month(ledger),
        category_breakdown=category_breakdown(ledger, categories),
        top_expenses=top_expenses(ledger, top_n),
        budget_score=score,
        trend=trend,
        recommendations=recommendations(
            ledger, categories, trend, score, currency_symbol
        ),
    )
