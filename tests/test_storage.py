"""Tests for local and in-memory ledger storage."""

import json
import pytest
from datetime import date
from decimal import Decimal

from budget_ledger.models.category import ExpenseCategory
from budget_ledger.models.ledger import Expense, MonthRecord
from budget_ledger.services.storage import (
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    LocalKeyValueStore,
    LocalLedgerStorage,
    MigrationError,
    StorageError,
    migrate_local_to_remote,
)


def _ledger():
    return {
        "2025-10": MonthRecord(
            income=Decimal("3000"),
            income_recurring=True,
            expenses=[Expense(
                id=1727740800000, name="Gym", amount=Decimal("40"),
                category="personal", is_recurring=True,
            )],
            category_limits={"food": Decimal("300")},
        ),
    }


@pytest.fixture
def kv(tmp_path):
    return LocalKeyValueStore(tmp_path / "data")


@pytest.fixture
def local(kv):
    return LocalLedgerStorage(kv, today=date(2025, 10, 17))


class FailingStorage(LedgerStorageInterface):
    """Storage whose every call fails."""

    async def load(self):
        raise StorageError("offline")

    async def save(self, ledger):
        raise StorageError("offline")

    async def clear(self):
        raise StorageError("offline")


class TestLocalKeyValueStore:
    """Tests for the file backed key/value store."""

    def test_set_get_remove(self, kv):
        """Test the basic key lifecycle."""
        assert kv.get("missing") is None
        kv.set("budgetIncome", "3000")
        assert kv.get("budgetIncome") == "3000"
        assert kv.keys() == ["budgetIncome"]
        assert kv.remove("budgetIncome") is True
        assert kv.remove("budgetIncome") is False

    def test_overwrite_leaves_no_temp_files(self, kv):
        """Test atomic replace."""
        kv.set("monthlyBudgets", "a")
        kv.set("monthlyBudgets", "b")
        assert kv.get("monthlyBudgets") == "b"
        assert sorted(p.name for p in kv.directory.iterdir()) == ["monthlyBudgets.json"]

    def test_invalid_keys(self, kv):
        """Test keys cannot escape the directory."""
        for key in ("", "../x", ".hidden", "a/b"):
            with pytest.raises(ValueError):
                kv.get(key)

    def test_clear(self, kv):
        """Test clearing every key."""
        kv.set("a", "1")
        kv.set("b", "2")
        kv.clear()
        assert kv.keys() == []


class TestLocalLedgerStorage:
    """Tests for the local ledger document."""

    async def test_save_and_load(self, local, kv):
        """Test a saved ledger loads back unchanged."""
        await local.save(_ledger())
        assert await local.load() == _ledger()

        saved = json.loads(kv.get("monthlyBudgets"))
        assert saved["monthlyBudgets"]["2025-10"]["incomeRecurring"] is True

    async def test_load_nothing_saved(self, local):
        """Test a fresh directory loads as an empty ledger."""
        assert await local.load() == {}
        assert local.has_saved_ledger() is False

    async def test_bare_month_mapping_is_accepted(self, local, kv):
        """Test saves that hold only the month mapping."""
        kv.set("monthlyBudgets", json.dumps({"2025-09": {"income": 2500}}))
        ledger = await local.load()
        assert ledger["2025-09"].income == Decimal("2500")

    async def test_malformed_data_raises(self, local, kv):
        """Test unreadable saves are reported, not replaced."""
        kv.set("monthlyBudgets", "{not json")
        with pytest.raises(MigrationError):
            await local.load()
        with pytest.raises(MigrationError):
            local.read_saved_ledger()
        assert kv.get("monthlyBudgets") == "{not json"

    async def test_bad_entries_are_dropped_one_at_a_time(self, local, kv):
        """Test one invalid expense does not discard the other months."""
        original = json.dumps({"monthlyBudgets": {
            "2024-12": {
                "income": 2000,
                "expenses": [{"id": 1, "name": "Rent", "amount": 1500, "category": "housing"}],
            },
            "2025-01": {
                "income": 100,
                "expenses": [
                    {"id": 2, "name": "Gift", "amount": 50, "category": "gifts"},
                    {"id": 3, "name": "Lunch", "amount": 12, "category": "food"},
                ],
                "categoryLimits": {"food": 200, "gifts": 10},
            },
            "2025-13": {"income": 5},
        }})
        kv.set("monthlyBudgets", original)

        ledger = await local.load()
        assert sorted(ledger) == ["2024-12", "2025-01"]
        assert ledger["2024-12"].expenses[0].name == "Rent"
        assert [e.name for e in ledger["2025-01"].expenses] == ["Lunch"]
        assert ledger["2025-01"].income == Decimal("100")
        assert ledger["2025-01"].category_limits == {ExpenseCategory.FOOD: Decimal("200")}
        assert kv.get("monthlyBudgetsBackup") == original

    async def test_legacy_format_is_migrated(self, local, kv):
        """Test the single-month keys fold into the current month."""
        kv.set("budgetIncome", "2500")
        kv.set("budgetExpenses", json.dumps([
            {"id": 1, "name": "Rent", "amount": 1100, "category": "housing"},
        ]))

        ledger = await local.load()
        record = ledger["2025-10"]
        assert record.income == Decimal("2500")
        assert record.expenses[0].name == "Rent"
        assert record.expenses[0].is_recurring is False
        assert kv.keys() == ["monthlyBudgets"]
        assert await local.load() == ledger

    async def test_malformed_legacy_expenses(self, local, kv):
        """Test bad legacy expenses are dropped while income survives."""
        kv.set("budgetIncome", "\"1800\"")
        kv.set("budgetExpenses", "oops")
        ledger = await local.load()
        assert ledger["2025-10"].income == Decimal("1800")
        assert ledger["2025-10"].expenses == []

    async def test_one_bad_legacy_expense_keeps_the_rest(self, local, kv):
        """Test legacy expenses are validated one by one."""
        kv.set("budgetExpenses", json.dumps([
            {"id": 1, "name": "Rent", "amount": 1100, "category": "housing"},
            {"id": 2, "name": "Gift", "amount": 50, "category": "gifts"},
            {"id": 3, "name": "Bus", "amount": 30, "category": "transport", "isRecurring": 1},
        ]))
        ledger = await local.load()
        expenses = ledger["2025-10"].expenses
        assert [e.name for e in expenses] == ["Rent", "Bus"]
        assert expenses[1].is_recurring is True

    async def test_clear(self, local, kv):
        """Test clearing removes current and legacy keys."""
        await local.save(_ledger())
        kv.set("budgetIncome", "1")
        assert await local.clear() is True
        assert kv.keys() == []
        assert await local.clear() is False


class TestInMemoryLedgerStorage:
    """Tests for the in-memory backend."""

    async def test_round_trip_through_document(self):
        """Test the stored document is the persisted JSON form."""
        storage = InMemoryLedgerStorage()
        await storage.save(_ledger())
        assert storage.save_count == 1
        assert storage.document["monthlyBudgets"]["2025-10"]["categoryLimits"] == {"food": "300"}
        loaded = await storage.load()
        assert loaded["2025-10"].category_limits == {ExpenseCategory.FOOD: Decimal("300")}

    async def test_clear(self):
        """Test clearing the stored document."""
        storage = InMemoryLedgerStorage(_ledger())
        assert await storage.clear() is True
        assert await storage.load() == {}


class TestMigrateLocalToRemote:
    """Tests for moving a local ledger to a remote store."""

    async def test_moves_and_discards_local(self, local):
        """Test a successful transfer."""
        await local.save(_ledger())
        remote = InMemoryLedgerStorage()
        assert await migrate_local_to_remote(local, remote) is True
        assert await remote.load() == _ledger()
        assert local.has_saved_ledger() is False

    async def test_nothing_to_move(self, local):
        """Test an empty local store."""
        remote = InMemoryLedgerStorage()
        assert await migrate_local_to_remote(local, remote) is False
        assert remote.save_count == 0

    async def test_failed_remote_keeps_local(self, local):
        """Test the local copy survives a failed remote save."""
        await local.save(_ledger())
        assert await migrate_local_to_remote(local, FailingStorage()) is False
        assert local.has_saved_ledger() is True
