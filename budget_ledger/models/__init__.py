"""
Data Models Package

This package contains all Pydantic models used by the budget ledger.
All data flowing through the system must conform to these schemas.
"""

from budget_ledger.models.category import (
    CATEGORIES,
    Category,
    ExpenseCategory,
    category_by_name,
    get_category,
)
from budget_ledger.models.ledger import (
    Expense,
    ExpenseIdFactory,
    Ledger,
    LedgerDocument,
    MonthRecord,
    coerce_amount,
)
from budget_ledger.models.insights import (
    BestWorstMonths,
    CategoryShare,
    CategoryStatus,
    InsightsReport,
    LedgerTotals,
    LimitAlert,
    MonthSavings,
    MonthSummary,
    RankedExpense,
    Recommendation,
    RecommendationKind,
    SpendingTrend,
)
from budget_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Categories
    "CATEGORIES",
    "Category",
    "ExpenseCategory",
    "category_by_name",
    "get_category",
    # Ledger models
    "Expense",
    "ExpenseIdFactory",
    "Ledger",
    "LedgerDocument",
    "MonthRecord",
    "coerce_amount",
    # Derived views
    "BestWorstMonths",
    "CategoryShare",
    "CategoryStatus",
    "InsightsReport",
    "LedgerTotals",
    "LimitAlert",
    "MonthSavings",
    "MonthSummary",
    "RankedExpense",
    "Recommendation",
    "RecommendationKind",
    "SpendingTrend",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
