"""Media lifecycle beyond admission: external links, deletion, local serving."""
from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from application.dto import LedgerEntryDTO
from application.ports.ledger import LinkLedger
from application.ports.storage import StoragePort
from core.logging_config import get_logger
from domain.common.exceptions import (
    BackendUnavailableException,
    BusinessException,
    InvalidRequestException,
    NotFoundException,
    UnauthorizedException,
)
from domain.gallery import LedgerEntry

logger = get_logger(__name__)

LINK_PREFIX = "link/"


def _entry_dto(entry: LedgerEntry) -> LedgerEntryDTO:
    return LedgerEntryDTO(
        key=entry.key,
        name=entry.name,
        url=entry.url,
        size=entry.size,
        last_modified=entry.last_modified,
        content_type=entry.content_type,
    )


class MediaService:
    def __init__(self, ledger: Optional[LinkLedger] = None):
        self.ledger = ledger

    async def submit_link(
        self, url: str, name: Optional[str] = None, contributor: Optional[str] = None
    ) -> LedgerEntryDTO:
        """Record an externally hosted media link in the ledger."""
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidRequestException("Only http and https links are accepted", field="url")
        if self.ledger is None:
            raise NotFoundException("Link submission is not enabled")

        entry = LedgerEntry(
            key=f"{LINK_PREFIX}{int(time.time() * 1000)}-{uuid.uuid4().hex}",
            name=name or parsed.path.rsplit("/", 1)[-1] or parsed.netloc,
            url=url,
            last_modified=datetime.now(timezone.utc),
            contributor=contributor,
        )
        try:
            await self.ledger.append(entry)
        except OSError as exc:
            logger.error("link_submit_failed", error=str(exc))
            raise BackendUnavailableException("Could not save the link") from exc
        return _entry_dto(entry)

    async def delete(self, storage: StoragePort, key: str) -> None:
        """Delete an object. A key that does not exist is not an error."""
        key = (key or "").strip()
        if not key:
            raise InvalidRequestException("Missing key", field="key")

        # Submitted links have no object behind them; anything else is deleted from storage
        if not await self._is_recorded_link(key):
            try:
                existed = await storage.delete(key)
            except BusinessException:
                raise
            except Exception as exc:
                logger.error("delete_failed", key=key, error=str(exc))
                raise BackendUnavailableException() from exc
            logger.info("media_deleted", key=key, existed=existed)

        if self.ledger is not None:
            try:
                await self.ledger.remove(key)
            except Exception as exc:
                logger.warning("ledger_remove_failed", key=key, error=str(exc))

    async def _is_recorded_link(self, key: str) -> bool:
        if self.ledger is None or not key.startswith(LINK_PREFIX):
            return False
        try:
            entries = await self.ledger.entries()
        except Exception as exc:
            logger.warning("ledger_read_failed", key=key, error=str(exc))
            return False
        return any(e.key == key and e.url for e in entries)

    def open_local(
        self, storage: StoragePort, key: str, expires: int, signature: str
    ) -> Path:
        """Path of a locally stored object addressed by a signed GET URL."""
        if not storage.verify_signature(key, "GET", expires, signature):
            raise UnauthorizedException("Media URL is invalid or has expired")
        path = storage.resolve_path(key)
        if path is None:
            raise NotFoundException(f"Media not found: {key}")
        return path
