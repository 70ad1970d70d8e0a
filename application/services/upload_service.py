"""Upload admission: validate a presign request, mint a key, sign a PUT."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import AsyncIterator, Optional, Union

from application.dto import PresignResponseDTO, UploadReceiptDTO
from application.ports.ledger import LinkLedger
from application.ports.storage import StoragePort
from application.services.gallery_service import UrlStrategy
from application.services.stats_service import StatsService
from application.utils.storage import build_upload_key
from core.logging_config import get_logger
from domain.common.exceptions import (
    BackendUnavailableException,
    BusinessException,
    TooLargeException,
    UnauthorizedException,
)
from domain.gallery import LedgerEntry
from domain.upload import AdmissionPolicy
from domain.upload.policy import normalize_content_type

logger = get_logger(__name__)


class UploadAdmissionService:
    def __init__(
        self,
        policy: AdmissionPolicy,
        url_strategy: UrlStrategy,
        presign_ttl: int = 900,
        max_key_length: int = 200,
        max_filename_length: int = 80,
        stats: Optional[StatsService] = None,
        ledger: Optional[LinkLedger] = None,
    ):
        self.policy = policy
        self.url_strategy = url_strategy
        self.presign_ttl = presign_ttl
        self.max_key_length = max_key_length
        self.max_filename_length = max_filename_length
        self.stats = stats
        self.ledger = ledger

    async def admit(
        self,
        storage: StoragePort,
        filename: Optional[str],
        content_type: Optional[str],
        declared_size: Union[str, int, float, None] = None,
        contributor: Optional[str] = None,
    ) -> PresignResponseDTO:
        size = self.policy.check(filename, content_type, declared_size)
        ctype = normalize_content_type(content_type)
        key = build_upload_key(filename, self.max_key_length, self.max_filename_length)

        try:
            presigned = await storage.generate_presigned_url(
                key, expires_in=self.presign_ttl, method="PUT", content_type=ctype
            )
        except BusinessException:
            raise
        except Exception as exc:
            logger.error("presign_failed", key=key, error=str(exc))
            raise BackendUnavailableException() from exc

        logger.info("upload_admitted", key=key, content_type=ctype, size=size)
        await self._record(key, filename, ctype, size, contributor)

        return PresignResponseDTO(
            url=presigned.url,
            key=key,
            method=presigned.method,
            headers=presigned.headers,
            expires_in_seconds=presigned.expires_in or self.presign_ttl,
            public_url=self.url_strategy.public_url(key),
        )

    async def _record(
        self,
        key: str,
        filename: Optional[str],
        content_type: str,
        size: Optional[int],
        contributor: Optional[str],
    ) -> None:
        """Bookkeeping after a successful admission. Failures are logged only."""
        if self.stats is not None:
            await self.stats.record_presign(size, contributor)
        if self.ledger is not None:
            try:
                await self.ledger.append(LedgerEntry(
                    key=key,
                    name=(filename or "").strip() or None,
                    size=size or 0,
                    last_modified=datetime.now(timezone.utc),
                    content_type=content_type,
                    contributor=contributor,
                ))
            except Exception as exc:
                logger.warning("ledger_append_failed", key=key, error=str(exc))

    async def receive(
        self,
        storage: StoragePort,
        key: str,
        expires: int,
        signature: str,
        content_type: Optional[str],
        chunks: AsyncIterator[bytes],
    ) -> UploadReceiptDTO:
        """Accept the body of a PUT to a locally signed upload URL."""
        ctype = normalize_content_type(content_type) if content_type else None
        if not storage.verify_signature(key, "PUT", expires, signature, ctype):
            raise UnauthorizedException("Upload URL is invalid or has expired")

        max_size = self.policy.max_size

        async def _bounded() -> AsyncIterator[bytes]:
            total = 0
            async for chunk in chunks:
                total += len(chunk)
                if total > max_size:
                    raise TooLargeException(total, max_size)
                yield chunk

        try:
            outcome = await storage.upload_stream(_bounded(), key, content_type=ctype, max_size=max_size)
        except BusinessException:
            raise
        except Exception as exc:
            logger.error("upload_receive_failed", key=key, error=str(exc))
            raise BackendUnavailableException() from exc

        logger.info("upload_received", key=key, size=outcome.size)
        return UploadReceiptDTO(key=outcome.key, size=outcome.size, etag=outcome.etag)
