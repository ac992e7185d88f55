"""Category limit alerts."""

from budget_ledger.alerts.evaluator import (
    ALERT_TITLE,
    AlertEvaluator,
    category_statuses,
)
from budget_ledger.alerts.notifier import (
    LoggingNotifier,
    Notifier,
    RecordingNotifier,
)

__all__ = [
    "ALERT_TITLE",
    "AlertEvaluator",
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
    "category_statuses",
]
