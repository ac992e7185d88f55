"""
Budget Session Orchestrator

BudgetSession is what a UI layer drives. It owns:
1. The LedgerStore (all month data, mutated only through it)
2. The Current Month pointer
3. The AlertEvaluator and its per-session suppression set
4. An optional storage backend, written through after every mutation
5. The AuditLogger

Flows:
- Load: storage -> store (failure means an empty ledger) -> populate the
  current month with recurring items
- Navigate: move the pointer by one calendar month -> populate the new
  month synchronously -> save if anything was copied
- Mutate: store mutation -> audit -> save (failure logged, never raised)
  -> limit check after adding an expense, if notifications are enabled

The in-memory ledger is always the source of truth for reads.
"""

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog

from budget_ledger.alerts import AlertEvaluator, LoggingNotifier, Notifier
from budget_ledger.analytics import build_insights, monthly_history
from budget_ledger.audit import AuditLogger
from budget_ledger.config import get_settings, validate_all_settings
from budget_ledger.export import export_filename, export_month_csv
from budget_ledger.ledger import (
    LedgerStore,
    current_month_key,
    parse_month_key,
    previous_known_month,
    shift_month,
)
from budget_ledger.models.audit import AuditEventBuilder
from budget_ledger.models.category import CATEGORIES, Category, ExpenseCategory
from budget_ledger.models.insights import (
    CategoryStatus,
    InsightsReport,
    LimitAlert,
    MonthSummary,
)
from budget_ledger.models.ledger import Expense, MonthRecord
from budget_ledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    LedgerStorageInterface,
    LocalKeyValueStore,
    LocalLedgerStorage,
    StorageError,
    migrate_local_to_remote,
)


class BudgetSession:
    """One user's budgeting session over their ledger."""

    def __init__(
        self,
        storage: Optional[LedgerStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        notifier: Optional[Notifier] = None,
        store: Optional[LedgerStore] = None,
        categories: tuple[Category, ...] = CATEGORIES,
        today: Optional[date] = None,
        near_limit_ratio: Optional[float] = None,
        notifications_enabled: Optional[bool] = None,
        currency_symbol: Optional[str] = None,
        top_expenses_count: Optional[int] = None,
        history_months: Optional[int] = None,
    ):
        app_settings = None
        if None in (
            near_limit_ratio,
            notifications_enabled,
            currency_symbol,
            top_expenses_count,
            history_months,
        ):
            app_settings = get_settings().app

        def setting(value, name):
            return value if value is not None else getattr(app_settings, name)

        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._store = store if store is not None else LedgerStore()
        self._categories = categories
        self._today = today
        self._currency_symbol = setting(currency_symbol, "currency_symbol")
        self._top_expenses_count = setting(top_expenses_count, "top_expenses_count")
        self._history_months = setting(history_months, "history_months")
        self._notifications_enabled = setting(notifications_enabled, "notifications_enabled")
        self._alerts = AlertEvaluator(
            notifier=notifier or LoggingNotifier(),
            near_limit_ratio=setting(near_limit_ratio, "near_limit_ratio"),
            currency_symbol=self._currency_symbol,
        )
        self._current_month = current_month_key(today)
        self._loaded = False
        self._load_failed = False
        self._logger = structlog.get_logger(__name__)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def storage(self) -> Optional[LedgerStorageInterface]:
        return self._storage

    @property
    def current_month(self) -> str:
        return self._current_month

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def load_failed(self) -> bool:
        """True while the last load raised; saves are held back until a load succeeds."""
        return self._load_failed

    @property
    def notifications_enabled(self) -> bool:
        return self._notifications_enabled

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    @property
    def alert_evaluator(self) -> AlertEvaluator:
        return self._alerts

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """
        Load the saved ledger and populate the current month.

        A storage failure leaves the session usable with an empty ledger,
        but nothing is written back until a later load succeeds, so the
        saved data is never replaced by the empty one.
        """
        if self._storage is not None:
            try:
                ledger = await self._storage.load()
            except StorageError as e:
                self._load_failed = True
                self._logger.error("ledger_load_failed", error=str(e))
                await self._audit.log(AuditEventBuilder.load_failed(str(e)))
            else:
                self._load_failed = False
                self._store.replace_all(ledger)
                await self._audit.log(AuditEventBuilder.ledger_loaded(len(ledger)))
        self._loaded = True
        await self._populate(self._current_month)

    async def _persist(self) -> bool:
        if self._storage is None or not self._loaded:
            return False
        if self._load_failed:
            self._logger.warning("ledger_save_skipped", reason="load_failed")
            await self._audit.log(AuditEventBuilder.save_skipped(len(self._store)))
            return False
        try:
            await self._storage.save(self._store.snapshot())
        except StorageError as e:
            self._logger.error("ledger_save_failed", error=str(e))
            await self._audit.log(AuditEventBuilder.save_failed(str(e)))
            return False
        await self._audit.log(AuditEventBuilder.ledger_saved(len(self._store)))
        return True

    async def _populate(self, key: str) -> bool:
        from_key = previous_known_month(self._store.month_keys(), key)
        copied = self._store.populate_month(key)
        if copied:
            await self._audit.log(AuditEventBuilder.recurring_propagated(from_key, key))
            await self._persist()
        return copied

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def go_to_month(self, key: str) -> bool:
        """
        Point the session at another month.

        Returns True if recurring items were copied into it.
        """
        parse_month_key(key)
        previous = self._current_month
        self._current_month = key
        await self._audit.log(AuditEventBuilder.month_navigated(previous, key))
        if not self._loaded:
            return False
        return await self._populate(key)

    async def go_to_previous_month(self) -> bool:
        return await self.go_to_month(shift_month(self._current_month, -1))

    async def go_to_next_month(self) -> bool:
        return await self.go_to_month(shift_month(self._current_month, 1))

    # ------------------------------------------------------------------
    # Mutations on the current month
    # ------------------------------------------------------------------

    async def set_income(self, amount: Any, recurring: Optional[bool] = None) -> None:
        key = self._current_month
        self._store.set_income(key, amount, recurring)
        record = self._store.get_month(key)
        await self._audit.log(AuditEventBuilder.income_set(
            key, str(record.income), record.income_recurring
        ))
        await self._persist()

    async def toggle_income_recurring(self) -> bool:
        key = self._current_month
        recurring = self._store.toggle_income_recurring(key)
        await self._audit.log(AuditEventBuilder.income_recurring_toggled(key, recurring))
        await self._persist()
        return recurring

    async def add_expense(
        self,
        name: Any,
        amount: Any,
        category: Any,
        is_recurring: bool = False,
    ) -> Optional[Expense]:
        """
        Add an expense to the current month.

        Returns None (and changes nothing) when the input is invalid.
        """
        key = self._current_month
        expense = self._store.add_expense(key, name, amount, category, is_recurring)
        if expense is None:
            await self._audit.log(AuditEventBuilder.expense_rejected(key, "add"))
            return None

        await self._audit.log(AuditEventBuilder.expense_added(
            key, expense.id, expense.name, str(expense.amount)
        ))
        await self._persist()
        if self._notifications_enabled:
            await self.check_limits()
        return expense

    async def update_expense(self, expense_id: int, patch: Mapping[str, Any]) -> bool:
        key = self._current_month
        if self._store.get_month(key).find_expense(expense_id) is None:
            return False
        if not self._store.update_expense(key, expense_id, patch):
            await self._audit.log(AuditEventBuilder.expense_rejected(key, "edit"))
            return False
        await self._audit.log(AuditEventBuilder.expense_updated(
            key, expense_id, sorted(patch)
        ))
        await self._persist()
        return True

    async def toggle_expense_recurring(self, expense_id: int) -> bool:
        key = self._current_month
        if not self._store.toggle_expense_recurring(key, expense_id):
            return False
        await self._audit.log(AuditEventBuilder.expense_recurring_toggled(key, expense_id))
        await self._persist()
        return True

    async def delete_expense(self, expense_id: int) -> bool:
        key = self._current_month
        if not self._store.delete_expense(key, expense_id):
            return False
        await self._audit.log(AuditEventBuilder.expense_deleted(key, expense_id))
        await self._persist()
        return True

    async def set_category_limit(self, category: Any, limit: Any) -> bool:
        key = self._current_month
        if not self._store.set_category_limit(key, category, limit):
            return False
        category_id = ExpenseCategory(category)
        stored = self._store.get_month(key).category_limits.get(category_id)
        await self._audit.log(AuditEventBuilder.category_limit_set(
            key, category_id.value, str(stored) if stored is not None else None
        ))
        await self._persist()
        return True

    async def reset(self) -> None:
        """Clear every month, saved data and session-lifetime state."""
        self._store.clear()
        self._alerts.reset()
        if self._storage is not None:
            try:
                await self._storage.clear()
                self._load_failed = False
            except StorageError as e:
                self._logger.error("ledger_clear_failed", error=str(e))
        await self._audit.log(AuditEventBuilder.data_reset())

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def enable_notifications(self) -> None:
        self._notifications_enabled = True

    def disable_notifications(self) -> None:
        self._notifications_enabled = False

    async def check_limits(self) -> list[LimitAlert]:
        """Fire over-limit notifications for the current month."""
        key = self._current_month
        alerts = self._alerts.check(key, self._store.get_month(key), self._categories)
        for alert in alerts:
            await self._audit.log(AuditEventBuilder.limit_alert_fired(
                key, alert.category.value, str(alert.spent), str(alert.limit)
            ))
        return alerts

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def current_record(self) -> MonthRecord:
        return self._store.get_month(self._current_month)

    def total_expenses(self) -> Decimal:
        return self.current_record().total_expenses

    def remaining(self) -> Decimal:
        return self.current_record().remaining

    def category_statuses(self) -> list[CategoryStatus]:
        return self._alerts.evaluate(self.current_record(), self._categories)

    def over_limit_categories(self) -> list[CategoryStatus]:
        return [status for status in self.category_statuses() if status.is_over_limit]

    def near_limit_categories(self) -> list[CategoryStatus]:
        return [status for status in self.category_statuses() if status.is_near_limit]

    def monthly_history(self) -> list[MonthSummary]:
        return monthly_history(self._store.snapshot(), self._history_months)

    def insights(self) -> InsightsReport:
        return build_insights(
            self._store.snapshot(),
            self._current_month,
            self._categories,
            top_n=self._top_expenses_count,
            currency_symbol=self._currency_symbol,
        )

    async def export_csv(self) -> str:
        record = self.current_record()
        report = export_month_csv(self._current_month, record, self._categories)
        await self._audit.log(AuditEventBuilder.report_exported(
            self._current_month, len(record.expenses)
        ))
        return report

    def export_filename(self) -> str:
        return export_filename(self._current_month, self._today)


async def move_local_ledger_to_remote(
    local: LocalLedgerStorage,
    remote: GoogleSheetsLedgerStorage,
    audit_logger: Optional[AuditLogger] = None,
) -> bool:
    """Run the one-time local-to-remote transfer for the signed-in user."""
    migrated = await migrate_local_to_remote(local, remote)
    if audit_logger is not None:
        await audit_logger.log(AuditEventBuilder.remote_migrated(remote.user_id, migrated))
    return migrated


def create_app_components(
    user_id: Optional[str] = None,
    use_storage: bool = True,
    notifier: Optional[Notifier] = None,
    data_dir: Optional[Path] = None,
) -> BudgetSession:
    """
    Factory function to create a session wired to the configured storage.

    Args:
        user_id: Signed-in user. With a user id and Google Sheets configured,
                 the ledger is stored remotely; otherwise on the local disk.
        use_storage: Set to False for a purely in-memory session.
        notifier: Receives over-limit notifications.
        data_dir: Overrides the configured local data directory.
    """
    logger = structlog.get_logger(__name__)
    settings = get_settings()
    storage: Optional[LedgerStorageInterface] = None
    audit_logger = AuditLogger()

    if use_storage:
        if user_id:
            checks = validate_all_settings()
            if checks["google_sheets"]:
                client = GoogleSheetsClient(settings.google_sheets)
                storage = GoogleSheetsLedgerStorage(user_id, client)
                audit_logger = AuditLogger(GoogleSheetsAuditStorage(client, user_id))
            else:
                # Remote store not configured, continue with local storage
                logger.warning(
                    "remote_storage_unavailable",
                    error=checks.get("google_sheets_error"),
                )
        if storage is None:
            store = LocalKeyValueStore(data_dir or settings.app.data_dir)
            storage = LocalLedgerStorage(store)

    return BudgetSession(
        storage=storage,
        audit_logger=audit_logger,
        notifier=notifier,
    )
