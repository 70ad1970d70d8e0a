import json

import httpx
import pytest

from core.config import DriveSettings, NotesSettings
from infrastructure.external.api_clients import APIError
from infrastructure.external.drive import DriveClient
from infrastructure.external.notes import NotesClient


def _notes_settings() -> NotesSettings:
    return NotesSettings(base_url="https://notes.example.co/", api_key="anon-key")


@pytest.mark.asyncio
async def test_notes_list_sends_key_headers_and_query():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": 1, "text": "hi"}])

    async with NotesClient(_notes_settings(), transport=httpx.MockTransport(handler)) as client:
        notes = await client.list_notes()

    assert notes == [{"id": 1, "text": "hi"}]
    request = seen[0]
    assert request.url.path == "/rest/v1/notes"
    assert request.url.params["order"] == "created_at.desc"
    assert request.url.params["limit"] == "200"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
async def test_notes_create_returns_inserted_row():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.headers["Prefer"] == "return=representation"
        body = json.loads(request.content)
        return httpx.Response(201, json=[{"id": 7, **body}])

    async with NotesClient(_notes_settings(), transport=httpx.MockTransport(handler)) as client:
        created = await client.create_note({"text": "congrats"})

    assert created == {"id": 7, "text": "congrats"}


@pytest.mark.asyncio
async def test_notes_delete_filters_by_id():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    async with NotesClient(_notes_settings(), transport=httpx.MockTransport(handler)) as client:
        await client.delete_note("42")

    assert seen[0].method == "DELETE"
    assert seen[0].url.params["id"] == "eq.42"


@pytest.mark.asyncio
async def test_transient_errors_are_retried_then_surface():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"message": "down"})

    client = NotesClient(_notes_settings(), transport=httpx.MockTransport(handler))
    client.retry_delay = 0.001
    async with client:
        with pytest.raises(APIError):
            await client.list_notes()

    assert len(calls) == client.max_retries + 1


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"message": "bad column"})

    async with NotesClient(_notes_settings(), transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(APIError, match="bad column"):
            await client.list_notes()

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_drive_listing_follows_page_tokens():
    pages = {
        None: {
            "files": [
                {"id": "a", "name": "a.jpg", "mimeType": "image/jpeg", "size": "10",
                 "modifiedTime": "2024-05-01T10:00:00Z"},
                {"name": "no-id.jpg"},
            ],
            "nextPageToken": "p2",
        },
        "p2": {"files": [{"id": "b", "mimeType": "video/mp4", "size": "oops"}]},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["key"] == "drive-key"
        assert "'folder-1' in parents" in request.url.params["q"]
        return httpx.Response(200, json=pages[request.url.params.get("pageToken")])

    settings = DriveSettings(folder_id="folder-1", api_key="drive-key")
    async with DriveClient(settings, transport=httpx.MockTransport(handler)) as client:
        files = await client.list_media(limit=50)

    assert [f.id for f in files] == ["a", "b"]
    assert files[0].size == 10
    assert files[1].size == 0
    assert files[1].name == "b"
    assert files[0].view_url == "https://drive.google.com/uc?export=view&id=a"
