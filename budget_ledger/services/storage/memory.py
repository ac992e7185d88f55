"""In-memory ledger storage for tests and sessions without persistence."""

from typing import Optional

from budget_ledger.models.ledger import Ledger, LedgerDocument
from budget_ledger.services.storage.interface import LedgerStorageInterface


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Keeps the last saved Ledger as a serialized document."""

    def __init__(self, initial: Optional[Ledger] = None):
        self._document: Optional[dict] = None
        self.save_count = 0
        if initial:
            self._document = LedgerDocument(monthly_budgets=initial).to_storage_dict()

    async def load(self) -> Ledger:
        if self._document is None:
            return {}
        return LedgerDocument.model_validate(self._document).monthly_budgets

    async def save(self, ledger: Ledger) -> bool:
        self._document = LedgerDocument(monthly_budgets=ledger).to_storage_dict()
        self.save_count += 1
        return True

    async def clear(self) -> bool:
        had_data = self._document is not None
        self._document = None
        return had_data

    @property
    def document(self) -> Optional[dict]:
        """The raw saved document, as a remote store would hold it."""
        return self._document
