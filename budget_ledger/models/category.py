"""
Expense Category Registry

The set of categories is fixed. Category ids are stored inside every
persisted expense and limit, so they must never be renamed or renumbered
without a migration of saved ledgers.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ExpenseCategory(str, Enum):
    """Stable category ids used as foreign keys by expenses and limits."""
    FOOD = "food"
    HOUSING = "housing"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    UTILITIES = "utilities"
    DEBT = "debt"
    PERSONAL = "personal"
    SAVINGS = "savings"
    VACATION = "vacation"
    OTHER = "other"


class Category(BaseModel):
    """A display entry of the registry."""
    model_config = ConfigDict(frozen=True)

    id: ExpenseCategory
    name: str = Field(..., min_length=1)
    color: str = Field(..., pattern=r"^#[0-9a-fA-F]{6}$")


CATEGORIES: tuple[Category, ...] = (
    Category(id=ExpenseCategory.FOOD, name="Food", color="#ff6b9d"),
    Category(id=ExpenseCategory.HOUSING, name="Housing", color="#00e5ff"),
    Category(id=ExpenseCategory.TRANSPORT, name="Transport", color="#ffd700"),
    Category(id=ExpenseCategory.ENTERTAINMENT, name="Entertainment", color="#00ff00"),
    Category(id=ExpenseCategory.UTILITIES, name="Utilities", color="#ff6b00"),
    Category(id=ExpenseCategory.DEBT, name="Debt", color="#ff4444"),
    Category(id=ExpenseCategory.PERSONAL, name="Personal Care & Recreation", color="#ff69b4"),
    Category(id=ExpenseCategory.SAVINGS, name="Savings", color="#ffd700"),
    Category(id=ExpenseCategory.VACATION, name="Vacation Fund", color="#00bfff"),
    Category(id=ExpenseCategory.OTHER, name="Other", color="#c084fc"),
)

_BY_ID = {category.id: category for category in CATEGORIES}


def get_category(category_id: ExpenseCategory | str) -> Category:
    """
    Look up a registry entry by id.

    Raises:
        KeyError: If the id is not a registered category
    """
    try:
        return _BY_ID[ExpenseCategory(category_id)]
    except ValueError:
        raise KeyError(category_id)


def category_by_name(name: str) -> Optional[Category]:
    """Find a category by its display name (case-insensitive)."""
    wanted = name.strip().lower()
    for category in CATEGORIES:
        if category.name.lower() == wanted:
            return category
    return None
