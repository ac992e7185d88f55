"""
Audit Models for Budget Ledger

Every ledger mutation, persistence outcome and alert produces an audit
event. Events are append-only: they are never modified or deleted.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Income
    INCOME_SET = "income_set"
    INCOME_RECURRING_TOGGLED = "income_recurring_toggled"

    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_RECURRING_TOGGLED = "expense_recurring_toggled"
    EXPENSE_REJECTED = "expense_rejected"

    # Limits and alerts
    CATEGORY_LIMIT_SET = "category_limit_set"
    LIMIT_ALERT_FIRED = "limit_alert_fired"

    # Months
    MONTH_NAVIGATED = "month_navigated"
    RECURRING_PROPAGATED = "recurring_propagated"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    LOAD_FAILED = "load_failed"
    LEDGER_SAVED = "ledger_saved"
    SAVE_FAILED = "save_failed"
    SAVE_SKIPPED = "save_skipped"
    REMOTE_MIGRATED = "remote_migrated"
    DATA_RESET = "data_reset"

    # Export
    REPORT_EXPORTED = "report_exported"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context
    month: Optional[str] = Field(
        default=None,
        description="Month key the event relates to"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Id of the expense or category the event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "month": self.month,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self, user_id: str = "") -> list:
        """
        Convert to a row for the audit worksheet.

        Columns: [event_id, timestamp, user_id, event_type, severity, month,
        entity_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            user_id,
            self.event_type.value,
            self.severity.value,
            self.month or "",
            self.entity_id or "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added("2025-03", expense_id, "Rent", "1200")
        event = AuditEventBuilder.save_failed("disk full")
    """

    @staticmethod
    def income_set(month: str, amount: str, recurring: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_SET,
            month=month,
            description=f"Income set to {amount}",
            details={"amount": amount, "recurring": recurring},
            is_user_action=True,
        )

    @staticmethod
    def income_recurring_toggled(month: str, recurring: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_RECURRING_TOGGLED,
            month=month,
            description=f"Income recurring set to {recurring}",
            details={"recurring": recurring},
            is_user_action=True,
        )

    @staticmethod
    def expense_added(month: str, expense_id: int, name: str, amount: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            month=month,
            entity_id=str(expense_id),
            description=f"Expense added: {name} - {amount}",
            details={"name": name, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(month: str, expense_id: int, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            month=month,
            entity_id=str(expense_id),
            description="Expense edited",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(month: str, expense_id: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            month=month,
            entity_id=str(expense_id),
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def expense_recurring_toggled(month: str, expense_id: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECURRING_TOGGLED,
            month=month,
            entity_id=str(expense_id),
            description="Expense recurring flag toggled",
            is_user_action=True,
        )

    @staticmethod
    def expense_rejected(month: str, action: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            month=month,
            description=f"Invalid expense input ignored on {action}",
            details={"action": action},
            is_user_action=True,
        )

    @staticmethod
    def category_limit_set(month: str, category: str, limit: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_LIMIT_SET,
            month=month,
            entity_id=category,
            description=(
                f"Limit for {category} set to {limit}" if limit
                else f"Limit for {category} removed"
            ),
            details={"limit": limit},
            is_user_action=True,
        )

    @staticmethod
    def limit_alert_fired(month: str, category: str, spent: str, limit: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LIMIT_ALERT_FIRED,
            severity=AuditSeverity.WARNING,
            month=month,
            entity_id=category,
            description=f"Spending over limit for {category}",
            details={"spent": spent, "limit": limit},
        )

    @staticmethod
    def month_navigated(from_month: str, to_month: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_NAVIGATED,
            month=to_month,
            description=f"Navigated from {from_month} to {to_month}",
            details={"from_month": from_month},
            is_user_action=True,
        )

    @staticmethod
    def recurring_propagated(from_month: str, to_month: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_PROPAGATED,
            month=to_month,
            description=f"Recurring items copied from {from_month}",
            details={"from_month": from_month},
        )

    @staticmethod
    def ledger_loaded(month_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            description=f"Ledger loaded with {month_count} months",
            details={"month_count": month_count},
        )

    @staticmethod
    def load_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            description="Ledger could not be loaded, starting empty",
            error_message=error_message,
        )

    @staticmethod
    def ledger_saved(month_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SAVED,
            severity=AuditSeverity.DEBUG,
            description=f"Ledger saved with {month_count} months",
            details={"month_count": month_count},
        )

    @staticmethod
    def save_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            description="Ledger could not be saved, keeping in-memory state",
            error_message=error_message,
        )

    @staticmethod
    def save_skipped(month_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_SKIPPED,
            severity=AuditSeverity.WARNING,
            description="Save skipped because the saved ledger was never loaded",
            details={"month_count": month_count},
        )

    @staticmethod
    def remote_migrated(user_id: str, migrated: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_MIGRATED,
            description=(
                "Local ledger moved to remote store" if migrated
                else "No local ledger to move to remote store"
            ),
            details={"user_id": user_id, "migrated": migrated},
            is_user_action=True,
        )

    @staticmethod
    def data_reset() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_RESET,
            severity=AuditSeverity.WARNING,
            description="All budget data cleared",
            is_user_action=True,
        )

    @staticmethod
    def report_exported(month: str, expense_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_EXPORTED,
            month=month,
            description=f"CSV report exported with {expense_count} expenses",
            details={"expense_count": expense_count},
            is_user_action=True,
        )
