"""Storage data transfer objects."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class StorageObject(BaseModel):
    """One entry of a bucket listing."""
    key: str
    size: int = 0
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None


class UploadResult(BaseModel):
    """Result of a server-side (local) upload."""
    key: str
    size: int
    etag: Optional[str] = None
    content_type: Optional[str] = None
    url: Optional[str] = None  # Public URL if the store is publicly served


class PresignedRequest(BaseModel):
    """A signed request the browser performs itself."""
    url: str
    method: str = "GET"
    expires_in: int
    # Headers the browser must send verbatim, or the signature will not match
    headers: dict[str, str] = Field(default_factory=dict)
