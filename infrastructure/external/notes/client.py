"""Client for a Supabase-style PostgREST table holding guest notes.

Every request carries the project key twice: as ``apikey`` and as a
bearer token, which is what the hosted REST gateway expects.
"""
from typing import Any, Optional

import httpx

from core.config import NotesSettings
from ..api_clients.base import BaseAPIClient

_LIST_LIMIT = 200


class NotesClient(BaseAPIClient):
    def __init__(self, config: NotesSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(
            base_url=f"{config.base_url}/rest/v1",
            timeout=config.timeout,
            headers={
                "apikey": config.api_key,
                "Authorization": f"Bearer {config.api_key}",
            },
            transport=transport,
        )
        self.table = config.table

    async def list_notes(self, limit: int = _LIST_LIMIT) -> list[dict[str, Any]]:
        response = await self.get(
            self.table,
            params={"select": "*", "order": "created_at.desc", "limit": str(limit)},
        )
        data = response.json()
        return data if isinstance(data, list) else []

    async def create_note(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self.post(
            self.table,
            json_data=payload,
            headers={"Prefer": "return=representation"},
        )
        data = response.json()
        # PostgREST answers inserts with an array of the created rows
        if isinstance(data, list):
            return data[0] if data else dict(payload)
        return data if isinstance(data, dict) else dict(payload)

    async def delete_note(self, note_id: str) -> None:
        await self.delete(self.table, params={"id": f"eq.{note_id}"})
