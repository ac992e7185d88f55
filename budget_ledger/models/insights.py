"""
Analytics and Alert Result Models

Read-only views derived from a Ledger. Nothing here is persisted.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from budget_ledger.models.category import ExpenseCategory
from budget_ledger.models.ledger import Expense


class LedgerTotals(BaseModel):
    """Aggregate income and spending across every known month."""

    total_income: Decimal
    total_expenses: Decimal
    total_saved: Decimal
    avg_income: Decimal
    avg_expenses: Decimal
    month_count: int = Field(ge=0)


class MonthSavings(BaseModel):
    month: str
    income: Decimal
    expenses: Decimal
    saved: Decimal


class BestWorstMonths(BaseModel):
    best: Optional[MonthSavings] = None
    worst: Optional[MonthSavings] = None


class CategoryShare(BaseModel):
    """A category's share of all-time spending."""

    id: ExpenseCategory
    name: str
    color: str
    total: Decimal
    percentage: float = Field(ge=0.0, le=100.0)


class RankedExpense(BaseModel):
    expense: Expense
    month: str
    category_name: str


class SpendingTrend(BaseModel):
    """Month-over-month change in total expenses."""

    current: Decimal
    previous: Decimal
    change_percent: float
    is_increase: bool


class RecommendationKind(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"


class Recommendation(BaseModel):
    kind: RecommendationKind
    title: str
    message: str


class MonthSummary(BaseModel):
    """One point of the monthly history view."""

    month: str
    income: Decimal
    expenses: Decimal
    remaining: Decimal


class InsightsReport(BaseModel):
    """Everything the insights screen shows, computed in one pass."""

    totals: LedgerTotals
    best_and_worst: BestWorstMonths
    category_breakdown: list[CategoryShare] = Field(default_factory=list)
    top_expenses: list[RankedExpense] = Field(default_factory=list)
    budget_score: float = Field(ge=0.0, le=100.0)
    trend: Optional[SpendingTrend] = None
    recommendations: list[Recommendation] = Field(default_factory=list)


class CategoryStatus(BaseModel):
    """
    Spending of one category in one month, measured against its limit.

    is_near_limit and is_over_limit are never both true: near-limit ends at
    the limit itself and over-limit starts above it.
    """

    id: ExpenseCategory
    name: str
    color: str
    total: Decimal
    percentage_of_income: float
    limit: Optional[Decimal] = None
    percent_of_limit: float = 0.0
    is_over_limit: bool = False
    is_near_limit: bool = False


class LimitAlert(BaseModel):
    """An over-limit notification that was emitted."""

    month: str
    category: ExpenseCategory
    title: str
    body: str
    spent: Decimal
    limit: Decimal
