"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输

Field names are snake_case in Python and camelCase on the wire.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer
from pydantic.alias_generators import to_camel
from typing import Any, Optional
from datetime import datetime, timezone


class DTOBase(BaseModel):
    """Base DTO: camelCase aliases and UTC-Z datetimes for all subclasses."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class OkDTO(DTOBase):
    ok: bool = True


class GalleryItemDTO(DTOBase):
    """One displayable media item."""

    key: str
    name: str
    size: int
    last_modified: Optional[datetime]
    url: str
    thumbnail_url: str
    open_url: str
    content_type: Optional[str] = None


class GalleryResponseDTO(DTOBase):
    items: list[GalleryItemDTO] = Field(default_factory=list)
    count: int = 0


class PresignResponseDTO(DTOBase):
    """Write credential for one upload.

    ``public_url`` is where the object will be once uploaded; it is only
    present when the bucket is served publicly.
    """

    url: str
    key: str
    method: str = "PUT"
    headers: dict[str, str] = Field(default_factory=dict)
    expires_in_seconds: int
    public_url: Optional[str] = None


class UploadReceiptDTO(DTOBase):
    key: str
    size: int
    etag: Optional[str] = None


class StatsDTO(DTOBase):
    object_count: int = 0
    bytes_stored: int = 0
    bytes_requested: int = 0
    presign_count: int = 0
    contributor_count: int = 0
    last_updated: Optional[datetime] = None
    last_synced_at: Optional[datetime] = None


class PasswordDTO(DTOBase):
    """登录 / 解锁请求体"""
    password: str = Field(..., min_length=1)


class SessionStatusDTO(DTOBase):
    authenticated: bool


class LinkSubmitDTO(DTOBase):
    url: str = Field(..., min_length=1, max_length=2048)
    name: Optional[str] = Field(default=None, max_length=200)

    @field_validator("url", "name", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value or None


class LedgerEntryDTO(DTOBase):
    key: str
    name: Optional[str] = None
    url: Optional[str] = None
    size: int = 0
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None


class NoteCreateDTO(DTOBase):
    text: str = Field(..., min_length=1, max_length=2000)
    author: Optional[str] = Field(default=None, max_length=80)

    @field_validator("text", "author", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value or None


class ClientConfigDTO(DTOBase):
    """Settings the browser client needs before its first request."""

    public_url: Optional[str] = None
    max_upload_bytes: int
    allowed_types: list[str]
    gate_enabled: bool
    notes_enabled: bool
    gallery_source: str


class HealthDTO(DTOBase):
    status: str = "healthy"
    version: str
    storage: dict[str, Any] = Field(default_factory=dict)
