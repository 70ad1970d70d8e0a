"""Gallery projection: source entries -> ordered, URL-resolved gallery items.

The gallery is best-effort. A failing source yields an empty gallery and a
failing signature drops one item; neither surfaces as an error response.
"""
from __future__ import annotations

import asyncio
import heapq
from typing import Optional, Protocol, Sequence

from application.dto import GalleryItemDTO, GalleryResponseDTO
from application.ports.ledger import LinkLedger
from application.ports.storage import StoragePort
from application.utils.storage import public_object_url
from core.logging_config import get_logger
from domain.common.exceptions import BackendUnavailableException
from domain.gallery import GalleryItem, SourceEntry, order_entries

logger = get_logger(__name__)


# ----------------------------------------------------------------------
# URL strategies
# ----------------------------------------------------------------------
class UrlStrategy(Protocol):
    mode: str

    def public_url(self, key: str) -> Optional[str]: ...

    async def resolve_many(
        self, storage: Optional[StoragePort], keys: Sequence[str]
    ) -> list[Optional[str]]: ...


class PublicUrlStrategy:
    """Objects are readable at ``<base>/<escaped key>``; no signing, no expiry."""

    mode = "public"

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def public_url(self, key: str) -> Optional[str]:
        return public_object_url(self.base_url, key)

    async def resolve_many(
        self, storage: Optional[StoragePort], keys: Sequence[str]
    ) -> list[Optional[str]]:
        return [self.public_url(k) for k in keys]


class SignedUrlStrategy:
    """One presigned GET per key, issued concurrently, results in input order."""

    mode = "signed"

    def __init__(self, ttl: int, concurrency: int = 16):
        self.ttl = ttl
        self.concurrency = max(concurrency, 1)

    def public_url(self, key: str) -> Optional[str]:
        return None

    async def resolve_many(
        self, storage: Optional[StoragePort], keys: Sequence[str]
    ) -> list[Optional[str]]:
        if not keys:
            return []
        if storage is None:
            logger.warning("gallery_sign_skipped", reason="storage_unavailable", count=len(keys))
            return [None] * len(keys)

        semaphore = asyncio.Semaphore(self.concurrency)

        async def _sign(key: str) -> Optional[str]:
            async with semaphore:
                try:
                    presigned = await storage.generate_presigned_url(key, expires_in=self.ttl, method="GET")
                    return presigned.url
                except Exception as exc:
                    logger.warning("gallery_sign_failed", key=key, error=str(exc))
                    return None

        # gather preserves argument order regardless of completion order
        return list(await asyncio.gather(*(_sign(k) for k in keys)))


# ----------------------------------------------------------------------
# Sources
# ----------------------------------------------------------------------
class GallerySource(Protocol):
    name: str

    async def fetch(self, storage: Optional[StoragePort]) -> list[SourceEntry]: ...


class BucketSource:
    """Live bucket listing reduced to the ``keep`` most recent objects.

    Bucket listings come back in key order, not upload order, so the whole
    listing is streamed through a bounded min-heap on the timestamp.
    """

    name = "bucket"

    def __init__(self, keep: int):
        self.keep = max(keep, 1)

    async def fetch(self, storage: Optional[StoragePort]) -> list[SourceEntry]:
        if storage is None:
            raise BackendUnavailableException()

        # (timestamp, -position, entry): on equal timestamps the earlier listed entry wins
        heap: list[tuple] = []
        scanned = 0
        async for obj in storage.iter_objects():
            entry = SourceEntry(
                key=obj.key,
                size=obj.size,
                last_modified=obj.last_modified,
                content_type=obj.content_type,
            )
            if not entry.has_key:
                continue
            item = (entry.timestamp, -scanned, entry)
            scanned += 1
            if len(heap) < self.keep:
                heapq.heappush(heap, item)
            elif item[:2] > heap[0][:2]:
                heapq.heapreplace(heap, item)

        logger.debug("bucket_scanned", scanned=scanned, kept=len(heap))
        # Listing order is kept so ties stay stable in order_entries
        return [entry for _, _, entry in sorted(heap, key=lambda t: -t[1])]


class LedgerSource:
    """Locally recorded uploads and links.

    With ``verify`` on, key-only rows (admitted uploads) are kept only when
    the object is present in a live listing.
    """

    name = "ledger"

    def __init__(self, ledger: LinkLedger, verify: bool = False):
        self.ledger = ledger
        self.verify = verify

    async def fetch(self, storage: Optional[StoragePort]) -> list[SourceEntry]:
        entries = [e.to_source_entry() for e in await self.ledger.entries()]
        pending = {e.key for e in entries if e.url is None}
        if not self.verify or not pending:
            return entries
        if storage is None:
            raise BackendUnavailableException()

        present: set[str] = set()
        async for obj in storage.iter_objects():
            if obj.key in pending:
                present.add(obj.key)
                if len(present) == len(pending):
                    break
        return [e for e in entries if e.url is not None or e.key in present]


class DriveFolderSource:
    """Files of one shared drive folder; URLs come from the drive itself."""

    name = "drive"

    def __init__(self, client, scan_limit: int):
        self.client = client
        self.scan_limit = scan_limit

    async def fetch(self, storage: Optional[StoragePort]) -> list[SourceEntry]:
        files = await self.client.list_media(limit=self.scan_limit)
        return [
            SourceEntry(
                key=f.id,
                size=f.size,
                last_modified=f.modified_time,
                url=f.view_url,
                name=f.name,
                content_type=f.mime_type,
            )
            for f in files
        ]


# ----------------------------------------------------------------------
# Projector
# ----------------------------------------------------------------------
def _to_dto(item: GalleryItem) -> GalleryItemDTO:
    return GalleryItemDTO(
        key=item.key,
        name=item.name,
        size=item.size,
        last_modified=item.last_modified,
        url=item.url,
        thumbnail_url=item.url,
        open_url=item.url,
        content_type=item.content_type,
    )


class GalleryProjector:
    def __init__(self, source: GallerySource, strategy: UrlStrategy, page_size: int):
        self.source = source
        self.strategy = strategy
        self.page_size = page_size

    async def project_entries(
        self, entries: Sequence[SourceEntry], storage: Optional[StoragePort]
    ) -> list[GalleryItem]:
        """Order, truncate and resolve already fetched entries."""
        selected = order_entries(entries, self.page_size)
        pending = [e.key for e in selected if not e.url]
        resolved = dict(zip(pending, await self.strategy.resolve_many(storage, pending)))

        items: list[GalleryItem] = []
        for entry in selected:
            url = entry.url or resolved.get(entry.key)
            if not url:
                continue
            items.append(GalleryItem.from_entry(entry, url))
        return items

    async def project(self, storage: Optional[StoragePort]) -> GalleryResponseDTO:
        try:
            entries = await self.source.fetch(storage)
        except Exception as exc:
            logger.error("gallery_listing_failed", source=self.source.name, error=str(exc))
            return GalleryResponseDTO(items=[], count=0)

        items = [_to_dto(i) for i in await self.project_entries(entries, storage)]
        logger.debug(
            "gallery_projected",
            source=self.source.name,
            mode=self.strategy.mode,
            scanned=len(entries),
            count=len(items),
        )
        return GalleryResponseDTO(items=items, count=len(items))
