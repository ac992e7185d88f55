"""
Month Ledger Store

Owns the in-memory Ledger and every mutation of it. Callers receive copies
of stored records, so the only way to change the Ledger is through the
methods below.

Invalid user input (empty names, non-numeric or non-positive amounts,
unknown categories) is rejected by returning None/False without touching
the Ledger. Nothing here raises for bad form input.

Month population state machine, per month key:

    Unvisited --populate/propagate--> Checked

Checked is terminal for the lifetime of the store, so recurring items are
copied into a month at most once, even if the user later empties it again.
"""

from typing import Any, Mapping, Optional

import structlog

from budget_ledger.ledger.months import parse_month_key, previous_known_month
from budget_ledger.models.category import ExpenseCategory
from budget_ledger.models.ledger import (
    ZERO,
    Expense,
    ExpenseIdFactory,
    Ledger,
    MonthRecord,
    coerce_amount,
)


logger = structlog.get_logger(__name__)

_PATCHABLE_FIELDS = ("name", "amount", "category", "is_recurring")


def _clean_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    name = str(value).strip()
    return name or None


def _positive_amount(value: Any):
    amount = coerce_amount(value)
    if amount is None or amount <= 0:
        return None
    return amount


def _category(value: Any) -> Optional[ExpenseCategory]:
    try:
        return ExpenseCategory(value)
    except ValueError:
        return None


class LedgerStore:
    """The mutation API over a Ledger of MonthRecords."""

    def __init__(
        self,
        ledger: Optional[Mapping[str, MonthRecord]] = None,
        id_factory: Optional[ExpenseIdFactory] = None,
    ):
        self._months: Ledger = {}
        self._ids = id_factory or ExpenseIdFactory()
        self._checked: set[str] = set()
        if ledger:
            self.replace_all(ledger)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_month(self, key: str) -> MonthRecord:
        """The stored record for key, or an empty default that is not stored."""
        record = self._months.get(key)
        if record is None:
            return MonthRecord()
        return record.model_copy(deep=True)

    def has_month(self, key: str) -> bool:
        return key in self._months

    def month_keys(self) -> list[str]:
        return sorted(self._months)

    def snapshot(self) -> Ledger:
        """A deep copy of the whole Ledger, in chronological key order."""
        return {
            key: self._months[key].model_copy(deep=True)
            for key in sorted(self._months)
        }

    def is_checked(self, key: str) -> bool:
        return key in self._checked

    def __len__(self) -> int:
        return len(self._months)

    # ------------------------------------------------------------------
    # Whole-ledger operations
    # ------------------------------------------------------------------

    def replace_all(self, ledger: Mapping[str, MonthRecord]) -> None:
        """Swap in a loaded Ledger. Population state is kept."""
        months: Ledger = {}
        for key, record in ledger.items():
            parse_month_key(key)
            months[key] = record.model_copy(deep=True)
            for expense in record.expenses:
                self._ids.observe(expense.id)
        self._months = months

    def clear(self) -> None:
        """Forget every month and every population check."""
        self._months = {}
        self._checked = set()

    # ------------------------------------------------------------------
    # Income
    # ------------------------------------------------------------------

    def set_income(self, key: str, amount: Any, recurring: Optional[bool] = None) -> None:
        """
        Set a month's income.

        Non-numeric or negative input is stored as 0. When recurring is
        None the month's existing recurring flag is kept.
        """
        value = coerce_amount(amount)
        if value is None or value < 0:
            logger.info("income_coerced", month=key, raw_value=str(amount))
            value = ZERO
        record = self._month_for_write(key)
        record.income = value
        if recurring is not None:
            record.income_recurring = bool(recurring)

    def toggle_income_recurring(self, key: str) -> bool:
        """Flip the month's income recurring flag and return the new value."""
        record = self._month_for_write(key)
        record.income_recurring = not record.income_recurring
        return record.income_recurring

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def add_expense(
        self,
        key: str,
        name: Any,
        amount: Any,
        category: Any,
        is_recurring: bool = False,
    ) -> Optional[Expense]:
        """
        Append a new expense to a month.

        Returns the created expense, or None if the input was rejected.
        """
        clean_name = _clean_name(name)
        value = _positive_amount(amount)
        category_id = _category(category)
        if clean_name is None or value is None or category_id is None:
            logger.warning(
                "expense_rejected",
                month=key,
                has_name=clean_name is not None,
                amount_valid=value is not None,
                category_valid=category_id is not None,
            )
            return None

        expense = Expense(
            id=self._ids.next_id(),
            name=clean_name,
            amount=value,
            category=category_id,
            is_recurring=bool(is_recurring),
        )
        self._month_for_write(key).expenses.append(expense)
        return expense.model_copy()

    def update_expense(self, key: str, expense_id: int, patch: Mapping[str, Any]) -> bool:
        """
        Replace an expense in place, keeping its id and position.

        patch may contain name, amount, category and is_recurring. Returns
        False when the expense does not exist or the patched values are
        invalid; the stored expense is unchanged in both cases.
        """
        record = self._months.get(key)
        if record is None:
            return False
        for index, current in enumerate(record.expenses):
            if current.id == expense_id:
                break
        else:
            return False

        unknown = set(patch) - set(_PATCHABLE_FIELDS)
        if unknown:
            logger.warning("expense_patch_ignored_fields", fields=sorted(unknown))

        clean_name = _clean_name(patch.get("name", current.name))
        value = _positive_amount(patch.get("amount", current.amount))
        category_id = _category(patch.get("category", current.category))
        if clean_name is None or value is None or category_id is None:
            logger.warning("expense_update_rejected", month=key, expense_id=expense_id)
            return False

        record.expenses[index] = Expense(
            id=current.id,
            name=clean_name,
            amount=value,
            category=category_id,
            is_recurring=bool(patch.get("is_recurring", current.is_recurring)),
        )
        return True

    def toggle_expense_recurring(self, key: str, expense_id: int) -> bool:
        record = self._months.get(key)
        expense = record.find_expense(expense_id) if record else None
        if expense is None:
            return False
        expense.is_recurring = not expense.is_recurring
        return True

    def delete_expense(self, key: str, expense_id: int) -> bool:
        """Remove an expense. Deleting a missing expense is a no-op."""
        record = self._months.get(key)
        if record is None:
            return False
        remaining = [expense for expense in record.expenses if expense.id != expense_id]
        removed = len(remaining) != len(record.expenses)
        record.expenses = remaining
        return removed

    # ------------------------------------------------------------------
    # Limits
    # ------------------------------------------------------------------

    def set_category_limit(self, key: str, category: Any, limit: Any) -> bool:
        """
        Store a positive limit, or remove the category's limit otherwise.

        Returns False only for an unknown category.
        """
        category_id = _category(category)
        if category_id is None:
            logger.warning("limit_rejected", month=key, category=str(category))
            return False

        value = coerce_amount(limit)
        if value is not None and value > 0:
            self._month_for_write(key).category_limits[category_id] = value
            return True

        record = self._months.get(key)
        if record is not None:
            record.category_limits.pop(category_id, None)
        return True

    # ------------------------------------------------------------------
    # Recurring propagation
    # ------------------------------------------------------------------

    def propagate_recurring(self, from_key: str, to_key: str) -> bool:
        """
        Copy recurring income, recurring expenses and limits into to_key.

        Does nothing when to_key was already checked, or when it already
        holds income or expenses. Copied expenses get fresh ids. Returns
        True when income or at least one expense was copied.
        """
        if to_key in self._checked:
            return False
        self._checked.add(to_key)

        source = self._months.get(from_key)
        if source is None:
            return False

        target = self._months.get(to_key)
        if target is not None and target.has_data:
            logger.debug("propagation_skipped", to_month=to_key, reason="month_has_data")
            return False

        copy_income = source.income_recurring and source.income > 0
        recurring = [expense for expense in source.expenses if expense.is_recurring]
        if not copy_income and not recurring:
            return False

        record = target.model_copy(deep=True) if target is not None else MonthRecord()
        if copy_income:
            record.income = source.income
            record.income_recurring = True
        record.expenses = [
            expense.model_copy(update={"id": self._ids.next_id()})
            for expense in recurring
        ]
        record.category_limits = dict(source.category_limits)
        self._months[to_key] = record

        logger.info(
            "recurring_propagated",
            from_month=from_key,
            to_month=to_key,
            income_copied=copy_income,
            expenses_copied=len(recurring),
        )
        return True

    def populate_month(self, to_key: str) -> bool:
        """Propagate from the most recent known month before to_key."""
        if to_key in self._checked:
            return False
        from_key = previous_known_month(self._months, to_key)
        if from_key is None:
            self._checked.add(to_key)
            return False
        return self.propagate_recurring(from_key, to_key)

    # ------------------------------------------------------------------

    def _month_for_write(self, key: str) -> MonthRecord:
        record = self._months.get(key)
        if record is None:
            parse_month_key(key)
            record = MonthRecord()
            self._months[key] = record
        return record
