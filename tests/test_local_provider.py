from urllib.parse import parse_qs, urlparse

import pytest

from infrastructure.external.storage import StorageConfig, ValidationError
from infrastructure.external.storage.providers.local import LocalProvider
from infrastructure.external.storage.utils import sign_local_url, verify_local_signature


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


@pytest.fixture
def provider(tmp_path):
    return LocalProvider(StorageConfig(type="local", local_base_path=str(tmp_path), local_signing_secret="k"))


def _query(url: str) -> dict:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


@pytest.mark.asyncio
async def test_stream_upload_then_list(provider, tmp_path):
    result = await provider.upload_stream(_chunks(b"abc", b"def"), "1-x-a.jpg", content_type="image/jpeg")

    assert result.size == 6
    assert (tmp_path / "1-x-a.jpg").read_bytes() == b"abcdef"
    objects = [obj async for obj in provider.iter_objects()]
    assert [(o.key, o.size, o.content_type) for o in objects] == [("1-x-a.jpg", 6, "image/jpeg")]
    assert objects[0].last_modified.tzinfo is not None


@pytest.mark.asyncio
async def test_upload_over_limit_leaves_nothing_behind(provider, tmp_path):
    with pytest.raises(ValidationError):
        await provider.upload_stream(_chunks(b"x" * 10, b"y" * 10), "big.mp4", max_size=15)
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_keys_cannot_escape_base(provider):
    with pytest.raises(ValidationError):
        await provider.upload_stream(_chunks(b"x"), "../outside.jpg")
    with pytest.raises(ValidationError):
        provider.resolve_path("../../etc/passwd")


@pytest.mark.asyncio
async def test_delete_missing_key_reports_false(provider):
    assert await provider.delete("never-there.jpg") is False


@pytest.mark.asyncio
async def test_signed_urls_verify_and_expire(provider):
    get = await provider.generate_presigned_url("a b.jpg", expires_in=60, method="GET")
    assert get.url.startswith("/media/a%20b.jpg?")
    q = _query(get.url)
    assert provider.verify_signature("a b.jpg", "GET", int(q["expires"]), q["sig"])
    assert not provider.verify_signature("other.jpg", "GET", int(q["expires"]), q["sig"])
    assert not provider.verify_signature("a b.jpg", "PUT", int(q["expires"]), q["sig"])

    put = await provider.generate_presigned_url("a.jpg", expires_in=60, method="PUT", content_type="image/jpeg")
    q = _query(put.url)
    assert put.headers == {"Content-Type": "image/jpeg"}
    assert provider.verify_signature("a.jpg", "PUT", int(q["expires"]), q["sig"], "image/jpeg")
    assert not provider.verify_signature("a.jpg", "PUT", int(q["expires"]), q["sig"], "image/png")


def test_expired_signature_is_rejected():
    url = sign_local_url("k", "/media", "a.jpg", "GET", 60, now=1000)
    q = _query(url)
    assert verify_local_signature("k", "a.jpg", "GET", int(q["expires"]), q["sig"], now=1059)
    assert not verify_local_signature("k", "a.jpg", "GET", int(q["expires"]), q["sig"], now=1061)


@pytest.mark.asyncio
async def test_listing_is_complete_and_key_ordered(provider):
    for key in ("b/2.jpg", "a.jpg", "c.jpg", "b/1.jpg"):
        await provider.upload_stream(_chunks(b"x"), key, content_type="image/jpeg")

    keys = [obj.key async for obj in provider.iter_objects()]
    assert keys == ["a.jpg", "b/1.jpg", "b/2.jpg", "c.jpg"]
    assert [obj.key async for obj in provider.iter_objects("b/")] == ["b/1.jpg", "b/2.jpg"]
