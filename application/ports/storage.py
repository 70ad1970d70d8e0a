"""Application-owned storage port abstraction (hexagonal architecture).

Defines the minimal methods needed by application use cases so that
the application layer does not depend on infrastructure details.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Optional, Protocol, runtime_checkable
from dataclasses import dataclass, field


@dataclass
class PresignedURL:
    url: str
    method: str = "GET"
    expires_in: int = 0
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class ListedObject:
    key: str
    size: int = 0
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None


@dataclass
class StorageInfo:
    type: str
    bucket: Optional[str]
    region: Optional[str]


@dataclass
class UploadOutcome:
    key: str
    etag: Optional[str]
    size: int
    content_type: Optional[str] = None
    url: Optional[str] = None


@runtime_checkable
class StoragePort(Protocol):
    def info(self) -> StorageInfo: ...

    def iter_objects(self, prefix: str = "") -> AsyncIterator[ListedObject]:
        """Every object under ``prefix``; providers page through the listing."""
        ...

    async def delete(self, key: str) -> bool: ...

    async def generate_presigned_url(
        self,
        key: str,
        expires_in: int = 3600,
        method: str = "GET",
        content_type: Optional[str] = None,
    ) -> PresignedURL: ...

    def public_url(self, key: str) -> Optional[str]: ...

    async def upload_stream(
        self,
        chunks: AsyncIterator[bytes],
        key: str,
        content_type: Optional[str] = None,
        max_size: Optional[int] = None,
    ) -> UploadOutcome: ...

    def resolve_path(self, key: str) -> Optional[Path]: ...

    def verify_signature(
        self,
        key: str,
        method: str,
        expires: int,
        signature: str,
        content_type: Optional[str] = None,
    ) -> bool: ...
