"""Month report export."""

from budget_ledger.export.csv_export import (
    CSVImportError,
    export_filename,
    export_month_csv,
    import_month_csv,
)

__all__ = [
    "CSVImportError",
    "export_filename",
    "export_month_csv",
    "import_month_csv",
]
