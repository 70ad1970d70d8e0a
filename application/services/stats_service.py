"""Upload statistics: incremental telemetry plus an overwriting resync."""
from __future__ import annotations

from typing import Optional

from application.dto import StatsDTO
from application.ports.ledger import StatsStore
from application.ports.storage import StoragePort
from core.logging_config import get_logger
from domain.common.exceptions import BackendUnavailableException
from domain.stats import StatsLedger

logger = get_logger(__name__)


def _to_dto(ledger: StatsLedger) -> StatsDTO:
    return StatsDTO(
        object_count=ledger.object_count,
        bytes_stored=ledger.bytes_stored,
        bytes_requested=ledger.bytes_requested,
        presign_count=ledger.presign_count,
        contributor_count=ledger.contributor_count,
        last_updated=ledger.last_updated,
        last_synced_at=ledger.last_synced_at,
    )


class StatsService:
    def __init__(self, store: StatsStore, enabled: bool = True):
        self.store = store
        self.enabled = enabled

    async def record_presign(self, size: Optional[int], contributor: Optional[str]) -> None:
        """Count an admitted upload. Never raises."""
        if not self.enabled:
            return
        try:
            await self.store.update(lambda ledger: ledger.record_presign(size, contributor))
        except Exception as exc:
            logger.warning("stats_record_failed", error=str(exc))

    async def snapshot(self) -> StatsDTO:
        try:
            return _to_dto(await self.store.load())
        except Exception as exc:
            logger.warning("stats_read_failed", error=str(exc))
            return StatsDTO()

    async def resync(self, storage: StoragePort) -> StatsDTO:
        """Replace object and byte counters with a full live listing."""
        sizes: list[int] = []
        try:
            async for obj in storage.iter_objects():
                sizes.append(obj.size)
        except Exception as exc:
            logger.error("stats_sync_listing_failed", error=str(exc), scanned=len(sizes))
            raise BackendUnavailableException() from exc

        try:
            ledger = await self.store.update(lambda ledger: ledger.resync(sizes))
        except OSError as exc:
            logger.error("stats_sync_write_failed", error=str(exc))
            raise BackendUnavailableException("Could not save statistics") from exc

        logger.info("stats_synced", object_count=ledger.object_count, bytes_stored=ledger.bytes_stored)
        return _to_dto(ledger)
