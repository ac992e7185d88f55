"""
Core Ledger Models

A Ledger maps canonical month keys ("YYYY-MM") to a MonthRecord holding the
month's income, its expenses and its per-category spending limits.

Persisted documents keep the camelCase field names of the saved browser
data (income, incomeRecurring, expenses, categoryLimits, isRecurring), so
ledgers written by earlier versions load unchanged. Python code uses the
snake_case attribute names.

Amounts are Decimal so that values entered by the user round-trip exactly.
"""

import math
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from budget_ledger.models.category import ExpenseCategory


ZERO = Decimal("0")
_CATEGORY_IDS = {category.value for category in ExpenseCategory}


def coerce_amount(value: Any) -> Optional[Decimal]:
    """
    Parse user input into a Decimal amount.

    Accepts numbers and numeric strings. Returns None for anything that is
    not a finite number (empty strings, words, NaN, booleans).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return Decimal(str(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class Expense(_CamelModel):
    """A single categorized expense within a month."""

    id: int = Field(
        ...,
        description="Creation-timestamp based id, unique within its month"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="What the money was spent on"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount spent"
    )
    category: ExpenseCategory = Field(
        ...,
        description="Registry id of the expense category"
    )
    is_recurring: bool = Field(
        default=False,
        description="Copy into the next month when it is first visited"
    )


class MonthRecord(_CamelModel):
    """
    Everything recorded for one month.

    CRITICAL: a category limit of zero or less is never stored. Setting a
    non-positive limit removes the entry.
    """

    income: Decimal = Field(default=ZERO, ge=0)
    income_recurring: bool = False
    expenses: list[Expense] = Field(default_factory=list)
    category_limits: dict[ExpenseCategory, Decimal] = Field(default_factory=dict)

    @field_validator('category_limits')
    @classmethod
    def drop_non_positive_limits(
        cls,
        v: dict[ExpenseCategory, Decimal],
    ) -> dict[ExpenseCategory, Decimal]:
        return {category: limit for category, limit in v.items() if limit > 0}

    @property
    def total_expenses(self) -> Decimal:
        return sum((expense.amount for expense in self.expenses), ZERO)

    @property
    def remaining(self) -> Decimal:
        """Income minus every expense of the month."""
        return self.income - self.total_expenses

    @property
    def has_data(self) -> bool:
        """True when the month has any expense or a positive income."""
        return bool(self.expenses) or self.income > 0

    def category_totals(self) -> dict[ExpenseCategory, Decimal]:
        """Sum of expense amounts per category, for categories with expenses."""
        totals: dict[ExpenseCategory, Decimal] = {}
        for expense in self.expenses:
            totals[expense.category] = totals.get(expense.category, ZERO) + expense.amount
        return totals

    def find_expense(self, expense_id: int) -> Optional[Expense]:
        for expense in self.expenses:
            if expense.id == expense_id:
                return expense
        return None


Ledger = dict[str, MonthRecord]


class LedgerDocument(_CamelModel):
    """The persisted form of a whole Ledger."""

    monthly_budgets: dict[str, MonthRecord] = Field(default_factory=dict)
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @field_validator('monthly_budgets')
    @classmethod
    def validate_month_keys(cls, v: dict[str, MonthRecord]) -> dict[str, MonthRecord]:
        from budget_ledger.ledger.months import parse_month_key

        for key in v:
            parse_month_key(key)
        return v

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ExpenseIdFactory:
    """
    Generates expense ids from the creation timestamp in milliseconds.

    Ids are strictly increasing for one factory: when the clock has not
    moved since the last id, the next id is the previous one plus one.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._clock = clock or (lambda: time.time_ns() // 1_000_000)
        self._last = 0

    def next_id(self) -> int:
        candidate = self._clock()
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate

    def observe(self, existing_id: int) -> None:
        """Make sure future ids are greater than an id already in use."""
        if existing_id > self._last:
            self._last = existing_id


def salvage_ledger(months: Any) -> tuple[Ledger, list[str]]:
    """
    Validate a saved month mapping one entry at a time.

    An expense or category limit that fails validation is dropped from its
    month; a month whose key or remaining fields are invalid is dropped
    whole. Everything else is kept.

    Returns:
        The recovered Ledger and a description of every dropped entry.

    Raises:
        ValueError: If months is not a mapping at all
    """
    from budget_ledger.ledger.months import parse_month_key

    if not isinstance(months, dict):
        raise ValueError("expected a mapping of month keys to months")

    ledger: Ledger = {}
    dropped: list[str] = []
    for key, raw in months.items():
        try:
            parse_month_key(key)
        except ValueError:
            dropped.append(f"month {key!r}: invalid month key")
            continue
        if not isinstance(raw, dict):
            dropped.append(f"month {key}: not an object")
            continue
        try:
            ledger[key] = MonthRecord.model_validate(raw)
            continue
        except ValidationError:
            pass

        fields = dict(raw)
        expenses = []
        for index, item in enumerate(_as_list(fields.get("expenses"))):
            try:
                expenses.append(Expense.model_validate(item))
            except ValidationError as e:
                dropped.append(f"month {key}: expense {index}: {e.errors()[0]['msg']}")
        fields["expenses"] = expenses

        limits = {}
        raw_limits = fields.get("categoryLimits", fields.get("category_limits"))
        for category, limit in (raw_limits.items() if isinstance(raw_limits, dict) else ()):
            amount = coerce_amount(limit)
            if amount is None or category not in _CATEGORY_IDS:
                dropped.append(f"month {key}: limit {category!r}")
                continue
            limits[ExpenseCategory(category)] = amount
        fields.pop("category_limits", None)
        fields["categoryLimits"] = limits

        try:
            ledger[key] = MonthRecord.model_validate(fields)
        except ValidationError as e:
            dropped.append(f"month {key}: {e.errors()[0]['msg']}")
    return ledger, dropped


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []
