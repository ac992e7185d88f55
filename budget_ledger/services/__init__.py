"""Services package."""

from budget_ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    LocalKeyValueStore,
    LocalLedgerStorage,
    MigrationError,
    StorageError,
    migrate_local_to_remote,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "LocalKeyValueStore",
    "LocalLedgerStorage",
    "MigrationError",
    "StorageError",
    "migrate_local_to_remote",
]
