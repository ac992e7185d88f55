"""Month key helpers. A month key is the canonical "YYYY-MM" string."""

import re
from datetime import date
from typing import Iterable, Optional

_MONTH_KEY = re.compile(r"^(\d{4})-(\d{2})$")


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def current_month_key(today: Optional[date] = None) -> str:
    return month_key(today or date.today())


def parse_month_key(key: str) -> tuple[int, int]:
    """
    Split a month key into (year, month).

    Raises:
        ValueError: If the key is not a zero-padded "YYYY-MM" string
    """
    match = _MONTH_KEY.match(key) if isinstance(key, str) else None
    if match is None:
        raise ValueError(f"Invalid month key: {key!r}")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in key: {key!r}")
    return year, month


def is_month_key(key: str) -> bool:
    try:
        parse_month_key(key)
    except ValueError:
        return False
    return True


def shift_month(key: str, delta: int) -> str:
    """Move a month key by delta calendar months (negative goes back)."""
    year, month = parse_month_key(key)
    index = year * 12 + (month - 1) + delta
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def previous_known_month(keys: Iterable[str], key: str) -> Optional[str]:
    """The latest of keys that is strictly before key, if any."""
    earlier = [known for known in keys if known < key]
    return max(earlier) if earlier else None
