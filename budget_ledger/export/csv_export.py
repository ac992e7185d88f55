"""
Month Report CSV Export

Layout of an exported month:

    Budget Report - October 2025
    <blank>
    Category,Name,Amount
    Income,Monthly Income,3000
    Housing,Rent,1200
    ...
    <blank>
    Summary
    Total Income,,3000
    Total Expenses,,1200
    Remaining,,1800

Amounts are written as plain decimal strings, so importing a report gives
back exactly the numbers that were exported. Fields containing the
delimiter, quotes or line breaks are quoted.
"""

import csv
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Iterable, Optional

from budget_ledger.formatting import format_month_year
from budget_ledger.models.category import CATEGORIES, Category, ExpenseCategory
from budget_ledger.models.ledger import Expense, ExpenseIdFactory, MonthRecord, coerce_amount

HEADER = ["Category", "Name", "Amount"]
INCOME_LABEL = "Income"
INCOME_NAME = "Monthly Income"
SUMMARY_LABEL = "Summary"
SUMMARY_ROWS = ("Total Income", "Total Expenses", "Remaining")


class CSVImportError(ValueError):
    """An exported report could not be read back."""
    pass


def _plain(amount: Decimal) -> str:
    return format(amount, "f")


def export_month_csv(
    month_key: str,
    record: MonthRecord,
    categories: Iterable[Category] = CATEGORIES,
) -> str:
    """Render one month as a CSV report."""
    names = {category.id: category.name for category in categories}

    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([f"Budget Report - {format_month_year(month_key)}"])
    writer.writerow([])
    writer.writerow(HEADER)
    writer.writerow([INCOME_LABEL, INCOME_NAME, _plain(record.income)])
    for expense in record.expenses:
        writer.writerow([
            names.get(expense.category, expense.category.value),
            expense.name,
            _plain(expense.amount),
        ])

    writer.writerow([])
    writer.writerow([SUMMARY_LABEL])
    writer.writerow([SUMMARY_ROWS[0], "", _plain(record.income)])
    writer.writerow([SUMMARY_ROWS[1], "", _plain(record.total_expenses)])
    writer.writerow([SUMMARY_ROWS[2], "", _plain(record.remaining)])
    return buffer.getvalue()


def import_month_csv(
    text: str,
    categories: Iterable[Category] = CATEGORIES,
    id_factory: Optional[ExpenseIdFactory] = None,
) -> MonthRecord:
    """
    Read the income and expenses of an exported report.

    Expenses get new ids; category limits and recurring flags are not part
    of the report and come back empty/false.

    Raises:
        CSVImportError: If the header row is missing, a category is unknown
            or an amount is not a number
    """
    by_name = {category.name.lower(): category.id for category in categories}
    ids = id_factory or ExpenseIdFactory()

    rows = list(csv.reader(StringIO(text)))
    try:
        start = rows.index(HEADER) + 1
    except ValueError:
        raise CSVImportError("Report header row not found")

    income = Decimal("0")
    expenses: list[Expense] = []
    for row in rows[start:]:
        if not row or not any(cell.strip() for cell in row):
            continue
        if row[0] == SUMMARY_LABEL:
            break
        if len(row) < 3:
            raise CSVImportError(f"Malformed report row: {row!r}")

        label, name, raw_amount = row[0], row[1], row[2]
        amount = coerce_amount(raw_amount)
        if amount is None:
            raise CSVImportError(f"Invalid amount: {raw_amount!r}")

        if label == INCOME_LABEL and name == INCOME_NAME:
            income = amount
            continue

        category_id = by_name.get(label.strip().lower())
        if category_id is None:
            raise CSVImportError(f"Unknown category: {label!r}")
        expenses.append(Expense(
            id=ids.next_id(),
            name=name,
            amount=amount,
            category=ExpenseCategory(category_id),
        ))

    return MonthRecord(income=income, expenses=expenses)


def export_filename(month_key: str, today: Optional[date] = None) -> str:
    return f"budget-{month_key}-{(today or date.today()).isoformat()}.csv"
