"""
Storage Services Package

Provides abstract interfaces and concrete implementations for persisting
the ledger: in memory, on the local disk, and in Google Sheets.
"""

from budget_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    MigrationError,
    StorageError,
)
from budget_ledger.services.storage.local import (
    LocalKeyValueStore,
    LocalLedgerStorage,
)
from budget_ledger.services.storage.memory import InMemoryLedgerStorage
from budget_ledger.services.storage.migration import migrate_local_to_remote
from budget_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "MigrationError",
    "StorageError",
    # Local implementations
    "InMemoryLedgerStorage",
    "LocalKeyValueStore",
    "LocalLedgerStorage",
    "migrate_local_to_remote",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
