import pytest
from httpx import ASGITransport, AsyncClient

from conftest import make_settings
from core.config import AuthSettings, GallerySettings, StorageSettings, UploadSettings
from infrastructure.adapters.storage_port import StorageProviderPortAdapter
from infrastructure.external.storage import StorageConfig
from infrastructure.external.storage.providers.local import LocalProvider
from main import create_app


async def _client_for(app):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_gallery_lists_signed_items(client, storage):
    storage.add("old.jpg", size=3, minutes=1, content_type="image/jpeg")
    storage.add("new.mp4", size=5, minutes=2)

    resp = await client.get("/gallery")

    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 2
    first = body["items"][0]
    assert first["key"] == "new.mp4"
    assert first["name"] == "new.mp4"
    assert first["size"] == 5
    assert first["lastModified"] == "2024-05-01T12:02:00Z"
    assert first["url"].startswith("https://signed.example/new.mp4")
    assert first["thumbnailUrl"] == first["openUrl"] == first["url"]


@pytest.mark.asyncio
async def test_gallery_degrades_to_empty_on_listing_failure(client, storage):
    storage.add("a.jpg")
    storage.fail_list = True

    resp = await client.get("/gallery")

    assert resp.status_code == 200
    assert resp.json() == {"items": [], "count": 0}


@pytest.mark.asyncio
async def test_presign_success_shape(client, storage):
    resp = await client.get("/presign", params={"filename": "a.jpg", "type": "image/jpeg", "size": "1234"})

    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"url", "key", "method", "headers", "expiresInSeconds"}
    assert body["method"] == "PUT"
    assert body["expiresInSeconds"] == 900
    assert body["key"].endswith("-a.jpg")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params,status,error_type",
    [
        ({"type": "image/jpeg", "size": "1"}, 400, "InvalidRequest"),
        ({"filename": "a.heic", "type": "image/heic", "size": "1"}, 415, "UnsupportedFormat"),
        ({"filename": "a.zip", "type": "application/zip", "size": "1"}, 415, "InvalidType"),
        ({"filename": "a.mp4", "type": "video/mp4", "size": str(600 * 1024 * 1024)}, 413, "TooLarge"),
        ({"filename": "a.mp4", "type": "video/mp4", "size": "-3"}, 400, "InvalidSize"),
        ({"filename": "a.mp4", "type": "video/mp4"}, 400, "InvalidSize"),
    ],
)
async def test_presign_rejections(client, storage, params, status, error_type):
    resp = await client.get("/presign", params=params)

    assert resp.status_code == status
    body = resp.json()
    assert body["type"] == error_type
    assert body["error"]
    assert body["requestId"] == resp.headers["X-Request-ID"]
    assert storage.sign_calls == []


@pytest.mark.asyncio
async def test_presign_backend_failure_is_generic_500(client, storage):
    storage.fail_sign_all = True

    resp = await client.get("/presign", params={"filename": "a.jpg", "type": "image/jpeg", "size": "1"})

    assert resp.status_code == 500
    assert resp.json()["type"] == "BackendUnavailable"
    assert "signing failed" not in resp.text


@pytest.mark.asyncio
async def test_presign_counts_stats(client):
    await client.get("/presign", params={"filename": "a.jpg", "type": "image/jpeg", "size": "100"})
    await client.get("/presign", params={"filename": "b.jpg", "type": "image/jpeg", "size": "50"})

    stats = (await client.get("/stats")).json()

    assert stats["presignCount"] == 2
    assert stats["bytesRequested"] == 150
    assert stats["contributorCount"] == 1


@pytest.mark.asyncio
async def test_sync_stats_overwrites_incremental_counters(client, storage):
    for name in ("a", "b", "c"):
        await client.get("/presign", params={"filename": f"{name}.jpg", "type": "image/jpeg", "size": "10"})
    storage.add("only.jpg", size=7)

    resp = await client.post("/sync-stats")

    assert resp.status_code == 200
    assert resp.json()["objectCount"] == 1
    assert resp.json()["bytesStored"] == 7
    assert (await client.get("/stats")).json()["objectCount"] == 1


@pytest.mark.asyncio
async def test_admin_routes_require_session(client, storage):
    storage.add("a.jpg")

    resp = await client.delete("/admin/delete", params={"key": "a.jpg"})

    assert resp.status_code == 401
    assert resp.json()["type"] == "Unauthorized"
    assert "WWW-Authenticate" not in resp.headers
    assert storage.deleted == []


@pytest.mark.asyncio
async def test_admin_login_round_trip(client, storage):
    storage.add("a.jpg")
    assert (await client.post("/admin/login", json={"password": "wrong"})).status_code == 401

    resp = await client.post("/admin/login", json={"password": "letmein"})
    assert resp.status_code == 200
    assert "admin_session" in resp.cookies
    assert (await client.get("/admin/session")).json() == {"authenticated": True}

    resp = await client.delete("/admin/delete", params={"key": "a.jpg"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert "a.jpg" not in storage.objects

    # Deleting again is a successful no-op
    resp = await client.delete("/admin/delete", params={"key": "a.jpg"})
    assert resp.json() == {"ok": True}

    await client.post("/admin/logout")
    assert (await client.get("/admin/session")).json() == {"authenticated": False}
    assert (await client.delete("/admin/delete", params={"key": "a.jpg"})).status_code == 401


@pytest.mark.asyncio
async def test_admin_delete_storage_error_is_500(client, storage):
    await client.post("/admin/login", json={"password": "letmein"})
    storage.fail_delete = True

    resp = await client.delete("/admin/delete", params={"key": "a.jpg"})

    assert resp.status_code == 500
    assert resp.json()["type"] == "BackendUnavailable"


@pytest.mark.asyncio
async def test_admin_delete_requires_key(client):
    await client.post("/admin/login", json={"password": "letmein"})
    resp = await client.delete("/admin/delete")
    assert resp.status_code == 400
    assert resp.json()["type"] == "InvalidRequest"


@pytest.mark.asyncio
async def test_upload_gate_blocks_presign_until_unlocked(app_factory, storage):
    app = app_factory(auth=AuthSettings(admin_password="letmein", upload_password="party"))
    async with await _client_for(app) as client:
        params = {"filename": "a.jpg", "type": "image/jpeg", "size": "1"}
        assert (await client.get("/presign", params=params)).status_code == 401
        assert (await client.post("/unlock", json={"password": "nope"})).status_code == 401

        assert (await client.post("/unlock", json={"password": "party"})).status_code == 200
        assert (await client.get("/presign", params=params)).status_code == 200
        assert (await client.get("/config")).json()["gateEnabled"] is True


@pytest.mark.asyncio
async def test_notes_are_not_found_when_unconfigured(client):
    assert (await client.get("/notes")).status_code == 404
    resp = await client.post("/notes", json={"text": "hello"})
    assert resp.status_code == 404
    assert resp.json()["type"] == "NotFound"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body(client):
    resp = await client.get("/nope")
    assert resp.status_code == 404
    assert resp.json()["type"] == "NotFound"


@pytest.mark.asyncio
async def test_ledger_mode_links_and_uploads(app_factory, storage, tmp_path):
    app = app_factory(gallery=GallerySettings(source="ledger", ledger_path=str(tmp_path / "links.json")))
    async with await _client_for(app) as client:
        bad = await client.post("/links", json={"url": "javascript:alert(1)"})
        assert bad.status_code == 400

        link = await client.post("/links", json={"url": "https://videos.example/clip.mp4"})
        assert link.status_code == 200
        assert link.json()["name"] == "clip.mp4"

        presigned = (await client.get(
            "/presign", params={"filename": "a.jpg", "type": "image/jpeg", "size": "5"}
        )).json()

        body = (await client.get("/gallery")).json()
        assert body["count"] == 2
        by_key = {item["key"]: item for item in body["items"]}
        assert by_key[presigned["key"]]["url"].startswith("https://signed.example/")
        assert link.json()["key"] in by_key
        assert by_key[link.json()["key"]]["url"] == "https://videos.example/clip.mp4"

        await client.post("/admin/login", json={"password": "letmein"})
        await client.delete("/admin/delete", params={"key": presigned["key"]})
        assert (await client.get("/gallery")).json()["count"] == 1


@pytest.mark.asyncio
async def test_public_mode_config_and_urls(app_factory, storage, tmp_path):
    app = app_factory(storage=StorageSettings(
        type="s3", bucket="b", public_base_url="https://cdn.example.com/",
        local_base_path=str(tmp_path / "media"),
    ))
    storage.add("x y.jpg")
    async with await _client_for(app) as client:
        config = (await client.get("/config")).json()
        assert config["publicUrl"] == "https://cdn.example.com"
        assert config["maxUploadBytes"] == 500 * 1024 * 1024

        item = (await client.get("/gallery")).json()["items"][0]
        assert item["url"] == "https://cdn.example.com/x%20y.jpg"

        presigned = (await client.get(
            "/presign", params={"filename": "a.jpg", "type": "image/jpeg", "size": "5"}
        )).json()
        assert presigned["publicUrl"] == f"https://cdn.example.com/{presigned['key']}"


@pytest.mark.asyncio
async def test_optional_size_setting(app_factory):
    app = app_factory(upload=UploadSettings(require_size=False))
    async with await _client_for(app) as client:
        resp = await client.get("/presign", params={"filename": "a.jpg", "type": "image/jpeg"})
        assert resp.status_code == 200


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_local_storage_round_trip(tmp_path):
    provider = LocalProvider(StorageConfig(
        type="local", local_base_path=str(tmp_path / "media"), local_signing_secret="s3cret",
    ))
    app = create_app(make_settings(tmp_path), storage=StorageProviderPortAdapter(provider))
    async with await _client_for(app) as client:
        presigned = (await client.get(
            "/presign", params={"filename": "party pic.jpg", "type": "image/jpeg", "size": "4"}
        )).json()
        assert presigned["url"].startswith("/upload/")

        put = await client.put(presigned["url"], content=b"\xff\xd8ok", headers=presigned["headers"])
        assert put.status_code == 200
        assert put.json()["size"] == 4

        # A PUT with a different content type does not match the signature
        bad = await client.put(presigned["url"], content=b"x", headers={"Content-Type": "image/png"})
        assert bad.status_code == 401

        item = (await client.get("/gallery")).json()["items"][0]
        assert item["key"] == presigned["key"]
        media = await client.get(item["url"])
        assert media.status_code == 200
        assert media.content == b"\xff\xd8ok"

        tampered = item["url"].replace("sig=", "sig=0")
        assert (await client.get(tampered)).status_code == 401


@pytest.mark.asyncio
async def test_bucket_objects_under_link_prefix_are_deleted(client, storage):
    storage.add("link/party.jpg")
    await client.post("/admin/login", json={"password": "letmein"})

    resp = await client.delete("/admin/delete", params={"key": "link/party.jpg"})

    assert resp.json() == {"ok": True}
    assert storage.deleted == ["link/party.jpg"]
    assert (await client.get("/gallery")).json()["count"] == 0


@pytest.mark.asyncio
async def test_deleting_a_submitted_link_only_touches_the_ledger(app_factory, storage, tmp_path):
    app = app_factory(gallery=GallerySettings(source="ledger", ledger_path=str(tmp_path / "links.json")))
    async with await _client_for(app) as client:
        link = (await client.post("/links", json={"url": "https://videos.example/clip.mp4"})).json()
        await client.post("/admin/login", json={"password": "letmein"})

        resp = await client.delete("/admin/delete", params={"key": link["key"]})

        assert resp.json() == {"ok": True}
        assert storage.deleted == []
        assert (await client.get("/gallery")).json()["count"] == 0


@pytest.mark.asyncio
async def test_wildcard_cors_never_allows_credentials(client):
    resp = await client.get("/health", headers={"Origin": "https://evil.example"})

    assert resp.headers["access-control-allow-origin"] == "*"
    assert "access-control-allow-credentials" not in resp.headers


@pytest.mark.asyncio
async def test_explicit_cors_origins_allow_credentials(app_factory):
    app = app_factory(CORS_ORIGINS=["https://party.example"])
    async with await _client_for(app) as client:
        allowed = await client.get("/health", headers={"Origin": "https://party.example"})
        other = await client.get("/health", headers={"Origin": "https://evil.example"})

    assert allowed.headers["access-control-allow-origin"] == "https://party.example"
    assert allowed.headers["access-control-allow-credentials"] == "true"
    assert "access-control-allow-origin" not in other.headers
