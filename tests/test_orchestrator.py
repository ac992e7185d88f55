"""Integration tests for the budget session flows."""

import json
import pytest
from datetime import date
from decimal import Decimal

from budget_ledger.alerts import RecordingNotifier
from budget_ledger.audit import AuditLogger
from budget_ledger.ledger import LedgerStore
from budget_ledger.models.audit import AuditEventType
from budget_ledger.models.category import ExpenseCategory
from budget_ledger.models.ledger import MonthRecord
from budget_ledger.orchestrator import (
    BudgetSession,
    create_app_components,
    move_local_ledger_to_remote,
)
from budget_ledger.services.storage import (
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    LocalKeyValueStore,
    LocalLedgerStorage,
    StorageError,
)


class FlakyStorage(LedgerStorageInterface):
    """Storage that can be switched to fail."""

    def __init__(self, fail_load=False, fail_save=False):
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.saved = None

    async def load(self):
        if self.fail_load:
            raise StorageError("network down")
        return {}

    async def save(self, ledger):
        if self.fail_save:
            raise StorageError("quota exceeded")
        self.saved = ledger
        return True

    async def clear(self):
        self.saved = None
        return True


class UserLedgerStorage(InMemoryLedgerStorage):
    """In-memory stand-in for a per-user remote store."""

    user_id = "u1"


def _session(storage=None, notifier=None, notifications_enabled=True, today=date(2025, 10, 17)):
    return BudgetSession(
        storage=storage,
        audit_logger=AuditLogger(),
        notifier=notifier or RecordingNotifier(),
        store=LedgerStore(),
        today=today,
        near_limit_ratio=0.8,
        notifications_enabled=notifications_enabled,
        currency_symbol="$",
        top_expenses_count=5,
        history_months=6,
    )


def _event_types(session):
    return [event.event_type for event in session.audit_logger.events]


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def notifier():
    return RecordingNotifier()


class TestLoading:
    """Tests for loading and the first population."""

    async def test_starts_on_current_month(self, storage):
        """Test the pointer defaults to today's month."""
        session = _session(storage)
        await session.load()
        assert session.current_month == "2025-10"
        assert session.is_loaded is True
        assert session.current_record() == MonthRecord()

    async def test_load_populates_current_month(self):
        """Test recurring items reach the current month on load."""
        previous = LedgerStore()
        previous.set_income("2025-09", "3000", recurring=True)
        storage = InMemoryLedgerStorage(previous.snapshot())

        session = _session(storage)
        await session.load()
        assert session.current_record().income == Decimal("3000")
        assert AuditEventType.RECURRING_PROPAGATED in _event_types(session)
        assert storage.save_count == 1

    async def test_load_failure_starts_empty(self):
        """Test a failed load leaves an empty, usable session."""
        session = _session(FlakyStorage(fail_load=True))
        await session.load()
        assert session.is_loaded is True
        assert len(session.store) == 0
        assert AuditEventType.LOAD_FAILED in _event_types(session)

    async def test_no_saves_before_load(self, storage):
        """Test an unloaded session never overwrites saved data."""
        session = _session(storage)
        await session.set_income("100")
        assert storage.save_count == 0


class TestBudgetFlow:
    """Tests for the main budgeting flow."""

    async def test_over_limit_scenario(self, storage, notifier):
        """Test income 3000, rent 1200 against a housing limit of 1000."""
        session = _session(storage, notifier)
        await session.load()
        await session.set_income("3000")
        await session.set_category_limit("housing", "1000")
        rent = await session.add_expense("Rent", "1200", "housing")

        assert rent is not None
        assert session.remaining() == Decimal("1800")
        assert session.total_expenses() == Decimal("1200")
        over = session.over_limit_categories()
        assert [s.id for s in over] == [ExpenseCategory.HOUSING]
        assert over[0].percent_of_limit == pytest.approx(120.0)
        assert notifier.notifications[0][1] == (
            "You've exceeded your Housing budget! Spent: $1,200.00 / Limit: $1,000.00"
        )
        assert AuditEventType.LIMIT_ALERT_FIRED in _event_types(session)

        saved = await storage.load()
        assert saved["2025-10"].category_limits == {ExpenseCategory.HOUSING: Decimal("1000")}

    async def test_alert_is_not_repeated(self, storage, notifier):
        """Test a second over-limit expense does not notify again."""
        session = _session(storage, notifier)
        await session.load()
        await session.set_category_limit("food", "100")
        await session.add_expense("Groceries", "150", "food")
        await session.add_expense("Snacks", "10", "food")
        assert len(notifier.notifications) == 1

    async def test_notifications_disabled(self, storage, notifier):
        """Test nothing fires while notifications are off."""
        session = _session(storage, notifier, notifications_enabled=False)
        await session.load()
        await session.set_category_limit("food", "100")
        await session.add_expense("Groceries", "150", "food")
        assert notifier.notifications == []

        session.enable_notifications()
        await session.add_expense("Snacks", "10", "food")
        assert len(notifier.notifications) == 1

    async def test_near_limit_categories(self, storage):
        """Test the near-limit view."""
        session = _session(storage)
        await session.load()
        await session.set_category_limit("food", "100")
        await session.add_expense("Groceries", "85", "food")
        assert [s.id for s in session.near_limit_categories()] == [ExpenseCategory.FOOD]
        assert session.over_limit_categories() == []

    async def test_rejected_expense(self, storage):
        """Test invalid input is audited and not saved."""
        session = _session(storage)
        await session.load()
        assert await session.add_expense("", "10", "food") is None
        assert await session.add_expense("Lunch", "abc", "food") is None
        assert session.current_record().expenses == []
        assert storage.save_count == 0
        assert _event_types(session).count(AuditEventType.EXPENSE_REJECTED) == 2

    async def test_edit_toggle_delete(self, storage):
        """Test expense maintenance on the current month."""
        session = _session(storage)
        await session.load()
        expense = await session.add_expense("Gym", "40", "personal")

        assert await session.update_expense(expense.id, {"amount": "45"}) is True
        assert await session.toggle_expense_recurring(expense.id) is True
        updated = session.current_record().expenses[0]
        assert updated.amount == Decimal("45")
        assert updated.is_recurring is True

        assert await session.update_expense(expense.id, {"amount": "-1"}) is False
        assert await session.delete_expense(expense.id) is True
        assert await session.delete_expense(expense.id) is False
        assert (await storage.load())["2025-10"].expenses == []

    async def test_income_recurring_toggle(self, storage):
        """Test toggling the income flag."""
        session = _session(storage)
        await session.load()
        await session.set_income("2000")
        assert await session.toggle_income_recurring() is True
        assert session.current_record().income_recurring is True


class TestNavigation:
    """Tests for month navigation and recurring propagation."""

    async def test_recurring_expense_reaches_next_month(self, storage):
        """Test a recurring gym membership is copied with a new id."""
        session = _session(storage)
        await session.load()
        gym = await session.add_expense("Gym", "40", "personal", is_recurring=True)

        assert await session.go_to_next_month() is True
        assert session.current_month == "2025-11"
        copied = session.current_record().expenses
        assert [e.name for e in copied] == ["Gym"]
        assert copied[0].id != gym.id
        assert "2025-11" in await storage.load()

    async def test_empty_ledger_copies_nothing(self, storage):
        """Test navigating an empty ledger."""
        session = _session(storage)
        await session.load()
        assert await session.go_to_next_month() is False
        assert session.store.has_month("2025-11") is False
        assert storage.save_count == 0

    async def test_revisit_does_not_copy_twice(self, storage):
        """Test leaving and returning to a month."""
        session = _session(storage)
        await session.load()
        await session.add_expense("Gym", "40", "personal", is_recurring=True)
        await session.go_to_next_month()
        await session.go_to_previous_month()
        assert await session.go_to_next_month() is False
        assert len(session.current_record().expenses) == 1

    async def test_year_boundary(self, storage):
        """Test navigation across December."""
        session = _session(storage, today=date(2025, 12, 5))
        await session.load()
        await session.go_to_next_month()
        assert session.current_month == "2026-01"
        await session.go_to_previous_month()
        await session.go_to_previous_month()
        assert session.current_month == "2025-11"
        assert _event_types(session).count(AuditEventType.MONTH_NAVIGATED) == 3

    async def test_go_to_invalid_month(self, storage):
        """Test malformed keys are refused."""
        session = _session(storage)
        await session.load()
        with pytest.raises(ValueError):
            await session.go_to_month("2025-13")
        assert session.current_month == "2025-10"


class TestPersistenceFailures:
    """Tests for write-through saving."""

    async def test_save_failure_keeps_memory_state(self):
        """Test a failed save is logged and the edit stays in memory."""
        storage = FlakyStorage(fail_save=True)
        session = _session(storage)
        await session.load()
        await session.set_income("3000")

        assert session.current_record().income == Decimal("3000")
        assert AuditEventType.SAVE_FAILED in _event_types(session)

        storage.fail_save = False
        await session.add_expense("Rent", "1200", "housing")
        assert storage.saved["2025-10"].income == Decimal("3000")

    async def test_failed_load_never_overwrites_saved_data(self):
        """Test edits after a failed load are not written back."""
        storage = FlakyStorage(fail_load=True)
        session = _session(storage)
        await session.load()
        await session.set_income("10")

        assert storage.saved is None
        assert session.load_failed is True
        assert session.current_record().income == Decimal("10")
        assert AuditEventType.SAVE_SKIPPED in _event_types(session)

    async def test_successful_reload_resumes_saving(self):
        """Test saving resumes once a load succeeds."""
        storage = FlakyStorage(fail_load=True)
        session = _session(storage)
        await session.load()
        storage.fail_load = False
        await session.load()
        await session.set_income("20")

        assert session.load_failed is False
        assert storage.saved["2025-10"].income == Decimal("20")

    async def test_reset_after_failed_load_resumes_saving(self):
        """Test an explicit reset makes the empty ledger the saved one."""
        storage = FlakyStorage(fail_load=True)
        session = _session(storage)
        await session.load()
        await session.reset()
        await session.set_income("30")
        assert storage.saved["2025-10"].income == Decimal("30")

    async def test_bad_expense_does_not_lose_other_months(self, tmp_path):
        """Test one invalid saved expense leaves the rest of the history intact."""
        kv = LocalKeyValueStore(tmp_path)
        kv.set("monthlyBudgets", json.dumps({"monthlyBudgets": {
            "2024-12": {"expenses": [
                {"id": 1, "name": "Rent", "amount": 1500, "category": "housing"},
            ]},
            "2025-01": {"expenses": [
                {"id": 2, "name": "Gift", "amount": 50, "category": "gifts"},
            ]},
        }}))
        session = _session(LocalLedgerStorage(kv))
        await session.load()
        await session.set_income("10")

        saved = json.loads(kv.get("monthlyBudgets"))["monthlyBudgets"]
        assert sorted(saved) == ["2024-12", "2025-01", "2025-10"]
        assert saved["2024-12"]["expenses"][0]["name"] == "Rent"
        assert saved["2025-01"]["expenses"] == []
        assert saved["2025-10"]["income"] == "10"
        assert "gifts" in kv.get("monthlyBudgetsBackup")

    async def test_session_without_storage(self):
        """Test a purely in-memory session."""
        session = _session()
        await session.load()
        await session.set_income("100")
        assert session.remaining() == Decimal("100")


class TestViewsAndExport:
    """Tests for history, insights and export."""

    async def test_insights_and_history(self, storage):
        """Test the views over the whole ledger."""
        session = _session(storage)
        await session.load()
        await session.set_income("3000")
        await session.add_expense("Rent", "1200", "housing")

        report = session.insights()
        assert report.totals.total_income == Decimal("3000")
        assert report.top_expenses[0].expense.name == "Rent"
        assert [h.month for h in session.monthly_history()] == ["2025-10"]
        assert [s.id for s in session.category_statuses()] == [ExpenseCategory.HOUSING]

    async def test_export(self, storage):
        """Test the CSV report and its file name."""
        session = _session(storage)
        await session.load()
        await session.set_income("3000")
        report = await session.export_csv()
        assert report.startswith("Budget Report - October 2025\n")
        assert session.export_filename() == "budget-2025-10-2025-10-17.csv"
        assert AuditEventType.REPORT_EXPORTED in _event_types(session)

    async def test_reset(self, storage, notifier):
        """Test reset clears memory, storage and alert suppression."""
        session = _session(storage, notifier)
        await session.load()
        await session.set_category_limit("food", "100")
        await session.add_expense("Groceries", "150", "food")
        await session.reset()

        assert len(session.store) == 0
        assert await storage.load() == {}
        assert session.alert_evaluator.is_suppressed("2025-10", "food") is False
        assert AuditEventType.DATA_RESET in _event_types(session)


class TestAppComponents:
    """Tests for the session factory."""

    @pytest.fixture(autouse=True)
    def no_remote_config(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

    def test_without_storage(self):
        """Test an in-memory session."""
        assert create_app_components(use_storage=False).storage is None

    def test_local_storage(self, tmp_path):
        """Test the default local backend."""
        session = create_app_components(data_dir=tmp_path)
        assert isinstance(session.storage, LocalLedgerStorage)

    def test_unconfigured_remote_falls_back_to_local(self, tmp_path):
        """Test a signed-in user without remote configuration."""
        session = create_app_components(user_id="u1", data_dir=tmp_path)
        assert isinstance(session.storage, LocalLedgerStorage)

    def test_configured_remote_is_used(self, tmp_path, monkeypatch):
        """Test a signed-in user with remote configuration gets per-user storage."""
        credentials = tmp_path / "service-account.json"
        credentials.write_text("{}")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")

        session = create_app_components(user_id="u1", data_dir=tmp_path)
        assert isinstance(session.storage, GoogleSheetsLedgerStorage)
        assert session.storage.user_id == "u1"

    async def test_move_local_ledger_to_remote(self, tmp_path):
        """Test the audited local to remote transfer."""
        local = LocalLedgerStorage(LocalKeyValueStore(tmp_path))
        await local.save({"2025-10": MonthRecord(income=Decimal("1"))})
        remote = UserLedgerStorage()
        audit_logger = AuditLogger()

        assert await move_local_ledger_to_remote(local, remote, audit_logger) is True
        assert list(await remote.load()) == ["2025-10"]
        assert audit_logger.events[-1].event_type == AuditEventType.REMOTE_MIGRATED
