"""
Local Disk Storage

LocalKeyValueStore keeps one small text file per key in a data directory,
the on-disk counterpart of browser local storage. LocalLedgerStorage keeps
the Ledger under the "monthlyBudgets" key.

Older versions saved a single month as two separate keys, "budgetIncome"
and "budgetExpenses". On first load those are folded into the current
calendar month and removed.
"""

import json
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from budget_ledger.ledger.months import current_month_key
from budget_ledger.models.ledger import (
    ZERO,
    Expense,
    Ledger,
    LedgerDocument,
    MonthRecord,
    coerce_amount,
    salvage_ledger,
)
from budget_ledger.services.storage.interface import (
    LedgerStorageInterface,
    MigrationError,
    StorageError,
)


LEDGER_KEY = "monthlyBudgets"
LEGACY_INCOME_KEY = "budgetIncome"
LEGACY_EXPENSES_KEY = "budgetExpenses"
BACKUP_KEY = "monthlyBudgetsBackup"

logger = structlog.get_logger(__name__)


class LocalKeyValueStore:
    """A directory of "<key>.json" files holding raw text values."""

    def __init__(self, directory: Path | str):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

    def set(self, key: str, value: str) -> None:
        """Write a value atomically (temp file, then rename)."""
        path = self._path(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}")

    def remove(self, key: str) -> bool:
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {e}")

    def keys(self) -> list[str]:
        if not self._directory.exists():
            return []
        return sorted(path.stem for path in self._directory.glob("*.json"))

    def clear(self) -> None:
        for key in self.keys():
            self.remove(key)


class LocalLedgerStorage(LedgerStorageInterface):
    """Ledger persistence on the local disk, with legacy format migration."""

    def __init__(self, store: LocalKeyValueStore, today: Optional[date] = None):
        self._store = store
        self._today = today

    def has_saved_ledger(self) -> bool:
        return self._store.get(LEDGER_KEY) is not None

    def read_saved_ledger(self) -> Optional[Ledger]:
        """
        Parse the saved Ledger.

        Returns None when nothing is saved. Entries that fail validation are
        dropped one at a time; when any are dropped, the saved text is first
        copied to the backup key so nothing is lost on the next save.

        Raises:
            MigrationError: If the saved data is not a month mapping at all
            StorageError: If the file cannot be read
        """
        raw = self._store.get(LEDGER_KEY)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            if isinstance(data, dict) and LEDGER_KEY in data:
                data = data[LEDGER_KEY]
            # Older saves hold the bare month mapping
            ledger, dropped = salvage_ledger(data)
        except (json.JSONDecodeError, ValueError) as e:
            raise MigrationError(f"Saved ledger is malformed: {e}")

        if dropped:
            self._store.set(BACKUP_KEY, raw)
            logger.warning(
                "saved_ledger_entries_dropped",
                dropped=dropped,
                backup_key=BACKUP_KEY,
            )
        return ledger

    def discard_saved_ledger(self) -> bool:
        return self._store.remove(LEDGER_KEY)

    async def load(self) -> Ledger:
        """
        Load the saved Ledger, migrating the legacy format if needed.

        Raises:
            MigrationError: If the saved Ledger cannot be parsed
        """
        saved = self.read_saved_ledger()
        if saved is not None:
            return saved
        return self._migrate_legacy()

    async def save(self, ledger: Ledger) -> bool:
        document = LedgerDocument(monthly_budgets=ledger).to_storage_dict()
        self._store.set(LEDGER_KEY, json.dumps(document))
        return True

    async def clear(self) -> bool:
        removed = False
        for key in (LEDGER_KEY, BACKUP_KEY, LEGACY_INCOME_KEY, LEGACY_EXPENSES_KEY):
            removed = self._store.remove(key) or removed
        return removed

    def _migrate_legacy(self) -> Ledger:
        raw_income = self._store.get(LEGACY_INCOME_KEY)
        raw_expenses = self._store.get(LEGACY_EXPENSES_KEY)
        if raw_income is None and raw_expenses is None:
            return {}

        income = _legacy_income(raw_income)
        expenses = _legacy_expenses(raw_expenses)
        key = current_month_key(self._today)
        ledger = {key: MonthRecord(income=income, expenses=expenses)}

        document = LedgerDocument(monthly_budgets=ledger).to_storage_dict()
        self._store.set(LEDGER_KEY, json.dumps(document))
        self._store.remove(LEGACY_INCOME_KEY)
        self._store.remove(LEGACY_EXPENSES_KEY)

        logger.info(
            "legacy_ledger_migrated",
            month=key,
            income=str(income),
            expense_count=len(expenses),
        )
        return ledger


def _legacy_income(raw: Optional[str]):
    if raw is None:
        return ZERO
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    amount = coerce_amount(value)
    if amount is None or amount < 0:
        logger.warning("legacy_income_malformed", raw_value=raw[:50])
        return ZERO
    return amount


def _legacy_expenses(raw: Optional[str]) -> list[Expense]:
    if raw is None:
        return []
    try:
        items = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error("legacy_expenses_malformed", error=str(e))
        return []
    if not isinstance(items, list):
        logger.error("legacy_expenses_malformed", error="expected a list of expenses")
        return []

    expenses = []
    for index, item in enumerate(items):
        if isinstance(item, dict):
            item["isRecurring"] = bool(item.get("isRecurring", False))
        try:
            expenses.append(Expense.model_validate(item))
        except ValidationError as e:
            logger.warning("legacy_expense_skipped", index=index, error=str(e))
    return expenses
