"""Infrastructure adapter that implements the application StoragePort
by delegating to the concrete StorageProvider and translating models.
"""
from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator, Optional

from application.ports.storage import StoragePort
from application.ports.storage import (
    ListedObject,
    PresignedURL,
    StorageInfo,
    UploadOutcome,
)
from domain.common.exceptions import InvalidRequestException, NotFoundException
from infrastructure.external.storage import (
    LocallyServedProvider,
    NotFoundError,
    StorageProvider,
    ValidationError,
)


class StorageProviderPortAdapter(StoragePort):
    def __init__(self, provider: StorageProvider):
        self.provider = provider

    def info(self) -> StorageInfo:
        cfg = getattr(self.provider, "config", None)
        stype = getattr(cfg, "type", None)
        bucket = getattr(cfg, "bucket", None)
        region = getattr(cfg, "region", None)
        return StorageInfo(type=str(stype) if stype is not None else "", bucket=bucket, region=region)

    async def iter_objects(self, prefix: str = "") -> AsyncIterator[ListedObject]:
        async for obj in self.provider.iter_objects(prefix=prefix):
            yield ListedObject(
                key=obj.key,
                size=int(obj.size or 0),
                last_modified=obj.last_modified,
                content_type=obj.content_type,
            )

    async def delete(self, key: str) -> bool:
        try:
            return await self.provider.delete(key)
        except ValidationError as e:
            raise InvalidRequestException(f"Invalid key: {key!r}", field="key") from e

    async def generate_presigned_url(
        self,
        key: str,
        expires_in: int = 3600,
        method: str = "GET",
        content_type: Optional[str] = None,
    ) -> PresignedURL:
        try:
            presigned = await self.provider.generate_presigned_url(key, expires_in, method, content_type)
        except ValidationError as e:
            raise InvalidRequestException(f"Invalid key: {key!r}", field="key") from e
        return PresignedURL(
            url=presigned.url,
            method=presigned.method or method,
            expires_in=int(presigned.expires_in or expires_in),
            headers=dict(presigned.headers or {}),
        )

    def public_url(self, key: str) -> Optional[str]:
        return self.provider.public_url(key)

    async def upload_stream(
        self,
        chunks: AsyncIterator[bytes],
        key: str,
        content_type: Optional[str] = None,
        max_size: Optional[int] = None,
    ) -> UploadOutcome:
        try:
            result = await self.provider.upload_stream(chunks, key, content_type=content_type, max_size=max_size)
        except ValidationError as e:
            raise InvalidRequestException(str(e), field="key") from e
        return UploadOutcome(
            key=result.key,
            etag=result.etag,
            size=int(result.size or 0),
            content_type=result.content_type or content_type,
            url=result.url,
        )

    def resolve_path(self, key: str) -> Optional[Path]:
        # Only providers that keep objects on this host can serve them directly
        if not isinstance(self.provider, LocallyServedProvider):
            return None
        try:
            return self.provider.resolve_path(key)
        except (NotFoundError, ValidationError) as e:
            raise NotFoundException(f"Media not found: {key}") from e

    def verify_signature(
        self,
        key: str,
        method: str,
        expires: int,
        signature: str,
        content_type: Optional[str] = None,
    ) -> bool:
        if not isinstance(self.provider, LocallyServedProvider):
            return False
        return self.provider.verify_signature(key, method, expires, signature, content_type)
