"""One-time transfer of a locally saved Ledger into a user's remote store."""

import structlog

from budget_ledger.services.storage.interface import (
    LedgerStorageInterface,
    StorageError,
)
from budget_ledger.services.storage.local import LocalLedgerStorage

logger = structlog.get_logger(__name__)


async def migrate_local_to_remote(
    local: LocalLedgerStorage,
    remote: LedgerStorageInterface,
) -> bool:
    """
    Copy the local Ledger to the remote store, then delete the local copy.

    The local copy is only deleted after the remote save succeeded.

    Returns:
        True if a Ledger was moved. False when there was nothing to move
        or the transfer failed (the failure is logged).
    """
    try:
        ledger = local.read_saved_ledger()
        if ledger is None:
            return False
        await remote.save(ledger)
        local.discard_saved_ledger()
    except StorageError as e:
        logger.error("remote_migration_failed", error=str(e))
        return False

    logger.info("remote_migration_completed", month_count=len(ledger))
    return True
