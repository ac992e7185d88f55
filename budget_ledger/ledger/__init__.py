"""The monthly ledger and its mutation API."""

from budget_ledger.ledger.months import (
    current_month_key,
    is_month_key,
    month_key,
    parse_month_key,
    previous_known_month,
    shift_month,
)
from budget_ledger.ledger.store import LedgerStore

__all__ = [
    "LedgerStore",
    "current_month_key",
    "is_month_key",
    "month_key",
    "parse_month_key",
    "previous_known_month",
    "shift_month",
]
