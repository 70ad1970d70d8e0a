"""Storage provider protocol definitions."""
from pathlib import Path
from typing import Protocol, AsyncIterator, Optional, runtime_checkable

from .models import (
    UploadResult,
    StorageObject,
    PresignedRequest
)


@runtime_checkable
class StorageProvider(Protocol):
    """What the gallery needs from an object store.

    Browsers read and write objects directly through presigned URLs, so the
    server side only lists, deletes and signs.
    """

    def iter_objects(self, prefix: str = "") -> AsyncIterator[StorageObject]:
        """Yield every object under ``prefix`` in key order, page by page."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete an object. A missing key is not an error."""
        ...

    async def generate_presigned_url(
        self,
        key: str,
        expires_in: int = 3600,
        method: str = "GET",
        content_type: Optional[str] = None,
    ) -> PresignedRequest:
        """Sign a GET or PUT for one key; a PUT is bound to ``content_type``."""
        ...

    def public_url(self, key: str) -> Optional[str]:
        """Unsigned URL when the bucket is publicly served, else None."""
        ...

    async def upload_stream(
        self,
        chunks: AsyncIterator[bytes],
        key: str,
        content_type: Optional[str] = None,
        max_size: Optional[int] = None,
    ) -> UploadResult:
        ...

    async def health_check(self) -> bool:
        ...


@runtime_checkable
class LocallyServedProvider(StorageProvider, Protocol):
    """A provider whose signed URLs point back at this application."""

    def resolve_path(self, key: str) -> Path:
        ...

    def verify_signature(
        self,
        key: str,
        method: str,
        expires: int,
        signature: str,
        content_type: Optional[str] = None,
    ) -> bool:
        ...
