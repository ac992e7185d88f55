"""
Category Limit Alerts

Classifies each category of a month against its configured limit and
emits over-limit notifications.

GUARANTEE: at most one over-limit notification per (month, category) per
session. The suppression set lives only in memory and is never persisted;
a pair is not re-alerted within the session even if spending drops below
the limit and rises above it again.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog

from budget_ledger.alerts.notifier import Notifier
from budget_ledger.formatting import format_currency
from budget_ledger.models.category import CATEGORIES, Category, ExpenseCategory
from budget_ledger.models.insights import CategoryStatus, LimitAlert
from budget_ledger.models.ledger import ZERO, MonthRecord

DEFAULT_NEAR_LIMIT_RATIO = 0.8

ALERT_TITLE = "Budget Alert!"


def category_statuses(
    record: MonthRecord,
    categories: Iterable[Category] = CATEGORIES,
    near_limit_ratio: float = DEFAULT_NEAR_LIMIT_RATIO,
) -> list[CategoryStatus]:
    """
    Status of every category that has spending or a limit, in registry order.

    percent_of_limit is 100 * spent / limit. Near-limit means
    limit * ratio <= spent <= limit; over-limit means spent > limit.
    """
    totals = record.category_totals()
    ratio = Decimal(str(near_limit_ratio))
    statuses = []
    for category in categories:
        spent = totals.get(category.id, ZERO)
        limit = record.category_limits.get(category.id)
        if spent <= 0 and limit is None:
            continue

        status = CategoryStatus(
            id=category.id,
            name=category.name,
            color=category.color,
            total=spent,
            percentage_of_income=(
                float(spent * 100 / record.income) if record.income > 0 else 0.0
            ),
            limit=limit,
        )
        if limit is not None:
            status.percent_of_limit = float(spent * 100 / limit)
            status.is_over_limit = spent > limit
            status.is_near_limit = limit * ratio <= spent <= limit
        statuses.append(status)
    return statuses


class AlertEvaluator:
    """Evaluates limits and fires one-shot over-limit notifications."""

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        near_limit_ratio: float = DEFAULT_NEAR_LIMIT_RATIO,
        currency_symbol: str = "$",
    ):
        self._notifier = notifier
        self._near_limit_ratio = near_limit_ratio
        self._currency_symbol = currency_symbol
        self._suppressed: set[tuple[str, ExpenseCategory]] = set()
        self._logger = structlog.get_logger(__name__)

    @property
    def near_limit_ratio(self) -> float:
        return self._near_limit_ratio

    def evaluate(
        self,
        record: MonthRecord,
        categories: Iterable[Category] = CATEGORIES,
    ) -> list[CategoryStatus]:
        return category_statuses(record, categories, self._near_limit_ratio)

    def check(
        self,
        month: str,
        record: MonthRecord,
        categories: Iterable[Category] = CATEGORIES,
    ) -> list[LimitAlert]:
        """
        Notify for categories newly over their limit in this month.

        Returns the alerts emitted by this call (empty when every
        over-limit category was already alerted this session).
        """
        emitted = []
        for status in self.evaluate(record, categories):
            pair = (month, status.id)
            if not status.is_over_limit or pair in self._suppressed:
                continue

            body = (
                f"You've exceeded your {status.name} budget! "
                f"Spent: {format_currency(status.total, self._currency_symbol)} / "
                f"Limit: {format_currency(status.limit, self._currency_symbol)}"
            )
            self._suppressed.add(pair)
            if self._notifier is not None:
                self._notifier.notify(ALERT_TITLE, body)

            self._logger.info(
                "limit_alert_fired",
                month=month,
                category=status.id.value,
                spent=str(status.total),
                limit=str(status.limit),
            )
            emitted.append(LimitAlert(
                month=month,
                category=status.id,
                title=ALERT_TITLE,
                body=body,
                spent=status.total,
                limit=status.limit,
            ))
        return emitted

    def is_suppressed(self, month: str, category: ExpenseCategory | str) -> bool:
        return (month, ExpenseCategory(category)) in self._suppressed

    def reset(self) -> None:
        """Forget every alert already fired."""
        self._suppressed.clear()
