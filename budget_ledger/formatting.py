"""Display formatting for amounts and month keys."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from budget_ledger.ledger.months import parse_month_key

_CENTS = Decimal("0.01")


def format_currency(amount: Decimal | float | int, symbol: str = "$") -> str:
    """Format an amount like $1,234.50 (negative: -$20.00)."""
    value = Decimal(str(amount)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_month_year(key: str) -> str:
    """Format "2025-10" as "October 2025"."""
    year, month = parse_month_key(key)
    return date(year, month, 1).strftime("%B %Y")
