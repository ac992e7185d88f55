"""
Abstract Storage Interface

The ledger is persisted as one whole document per user. Backends:
1. InMemoryLedgerStorage for tests and offline use
2. LocalLedgerStorage on the local disk
3. GoogleSheetsLedgerStorage as the remote per-user store

Business logic only sees LedgerStorageInterface, so backends are swappable.
"""

from abc import ABC, abstractmethod

from budget_ledger.models.audit import AuditEvent
from budget_ledger.models.ledger import Ledger


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger persistence.

    The in-memory Ledger is always the source of truth; storage is a
    write-through copy of it.
    """

    @abstractmethod
    async def load(self) -> Ledger:
        """
        Load the full saved Ledger.

        Returns:
            The saved mapping of month key to MonthRecord, or an empty
            mapping if nothing was saved yet

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def save(self, ledger: Ledger) -> bool:
        """
        Persist the entire Ledger, replacing what was saved before.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """
        Delete every saved month.

        Returns:
            True if anything was removed
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class MigrationError(StorageError):
    """Saved data could not be moved between formats or backends."""
    pass
