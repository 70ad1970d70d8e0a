"""Shared pytest fixtures.

The app under test is built with ``create_app(settings, storage=...)`` and
an in-memory storage port, so no bucket and no lifespan are needed
(ASGITransport does not run the lifespan).
"""
import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncIterator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from application.ports.storage import ListedObject, PresignedURL, StorageInfo, UploadOutcome
from core.config import (
    AuthSettings,
    GallerySettings,
    Settings,
    StatsSettings,
    StorageSettings,
)

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeStorage:
    """In-memory StoragePort; listings come back in key order like S3."""

    def __init__(self):
        self.objects: dict[str, ListedObject] = {}
        self.fail_list = False
        self.fail_sign_keys: set[str] = set()
        self.fail_sign_all = False
        self.fail_delete = False
        self.sign_delays: dict[str, float] = {}
        self.sign_calls: list[tuple[str, str, Optional[str]]] = []
        self.deleted: list[str] = []
        self.uploads: dict[str, bytes] = {}

    def add(self, key: str, size: int = 100, minutes: Optional[int] = 0, content_type: Optional[str] = None):
        last_modified = None if minutes is None else BASE_TIME + timedelta(minutes=minutes)
        self.objects[key] = ListedObject(key=key, size=size, last_modified=last_modified, content_type=content_type)

    def info(self) -> StorageInfo:
        return StorageInfo(type="fake", bucket="test-bucket", region=None)

    async def iter_objects(self, prefix: str = "") -> AsyncIterator[ListedObject]:
        if self.fail_list:
            raise ConnectionError("bucket unreachable")
        for key in sorted(k for k in self.objects if k.startswith(prefix)):
            yield self.objects[key]

    async def delete(self, key: str) -> bool:
        if self.fail_delete:
            raise ConnectionError("bucket unreachable")
        self.deleted.append(key)
        return self.objects.pop(key, None) is not None

    async def generate_presigned_url(
        self,
        key: str,
        expires_in: int = 3600,
        method: str = "GET",
        content_type: Optional[str] = None,
    ) -> PresignedURL:
        self.sign_calls.append((key, method, content_type))
        if self.fail_sign_all or key in self.fail_sign_keys:
            raise PermissionError("signing failed")
        delay = self.sign_delays.get(key)
        if delay:
            await asyncio.sleep(delay)
        headers = {"Content-Type": content_type} if method == "PUT" and content_type else {}
        return PresignedURL(
            url=f"https://signed.example/{key}?method={method}&expires={expires_in}",
            method=method,
            expires_in=expires_in,
            headers=headers,
        )

    def public_url(self, key: str) -> Optional[str]:
        return None

    async def upload_stream(
        self,
        chunks: AsyncIterator[bytes],
        key: str,
        content_type: Optional[str] = None,
        max_size: Optional[int] = None,
    ) -> UploadOutcome:
        body = b"".join([c async for c in chunks])
        self.uploads[key] = body
        return UploadOutcome(key=key, etag=None, size=len(body), content_type=content_type)

    def resolve_path(self, key: str) -> Optional[Path]:
        return None

    def verify_signature(self, key, method, expires, signature, content_type=None) -> bool:
        return False


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = dict(
        storage=StorageSettings(type="local", local_base_path=str(tmp_path / "media")),
        gallery=GallerySettings(ledger_path=str(tmp_path / "links.json")),
        stats=StatsSettings(path=str(tmp_path / "stats.json")),
        auth=AuthSettings(admin_password="letmein"),
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def app_factory(tmp_path, storage):
    from main import create_app

    def _factory(**overrides):
        return create_app(make_settings(tmp_path, **overrides), storage=storage)

    return _factory


@pytest.fixture
def app(app_factory):
    return app_factory()


@pytest_asyncio.fixture
async def client(app) -> AsyncClient:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
