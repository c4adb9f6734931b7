import logging
from src.models.base_model import SyncCounts
from src.models.sync_log import SyncStatus


class SyncAuditLog:
    """
    Append-only record of reconciliation attempts. Each attempt gets one
    row that moves running -> completed or running -> failed exactly once.
    """
    def __init__(self, db_manager):
        self.db_manager = db_manager

    async def begin(self, kind: str) -> int:
        sync_log = await self.db_manager.create_sync_log(kind)
        logging.info(f"Sync started: ID={sync_log.id}, Type={kind}")
        return sync_log.id

    async def complete(self, token: int, counts: SyncCounts) -> bool:
        done = await self.db_manager.finish_sync_log(token, SyncStatus.COMPLETED, counts=counts)
        if done:
            logging.info(f"Sync completed: ID={token}, Seen={counts.seen}, Added={counts.added}, Updated={counts.updated}, Skipped={counts.skipped}")
        else:
            logging.warning(f"Sync record {token} was not running; completion ignored")
        return done

    async def fail(self, token: int, error, counts: SyncCounts = None) -> bool:
        message = str(error)
        done = await self.db_manager.finish_sync_log(
            token, SyncStatus.FAILED, counts=counts or SyncCounts(), error_message=message
        )
        if done:
            logging.error(f"Sync failed: ID={token}, Error={message}")
        else:
            logging.warning(f"Sync record {token} was not running; failure ignored")
        return done

    async def latest(self):
        return await self.db_manager.latest_sync_log()
