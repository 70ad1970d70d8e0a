"""Google Drive v3 folder listing using an API key (public folders only)."""
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from core.config import DriveSettings
from ..api_clients.base import BaseAPIClient

_PAGE_SIZE = 1000


@dataclass
class DriveFile:
    id: str
    name: str
    mime_type: Optional[str]
    size: int
    modified_time: Optional[str]

    @property
    def view_url(self) -> str:
        return f"https://drive.google.com/uc?export=view&id={self.id}"


class DriveClient(BaseAPIClient):
    def __init__(self, config: DriveSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(base_url=config.api_base, timeout=config.timeout, transport=transport)
        self.folder_id = config.folder_id
        self.api_key = config.api_key

    async def list_media(self, limit: int) -> list[DriveFile]:
        """List image and video files in the folder, following page tokens."""
        params: dict[str, Any] = {
            "q": (
                f"'{self.folder_id}' in parents and trashed = false and "
                "(mimeType contains 'image/' or mimeType contains 'video/')"
            ),
            "fields": "files(id,name,mimeType,size,modifiedTime),nextPageToken",
            "pageSize": min(_PAGE_SIZE, limit),
            "orderBy": "modifiedTime desc",
            "includeItemsFromAllDrives": "true",
            "supportsAllDrives": "true",
            "key": self.api_key,
        }
        files: list[DriveFile] = []
        while len(files) < limit:
            data = (await self.get("files", params=params)).json() or {}
            for raw in data.get("files", []):
                if not raw.get("id"):
                    continue
                try:
                    size = int(raw.get("size") or 0)
                except (TypeError, ValueError):
                    size = 0
                files.append(DriveFile(
                    id=raw["id"],
                    name=raw.get("name") or raw["id"],
                    mime_type=raw.get("mimeType"),
                    size=size,
                    modified_time=raw.get("modifiedTime"),
                ))
            token = data.get("nextPageToken")
            if not token:
                break
            params["pageToken"] = token
        return files[:limit]
