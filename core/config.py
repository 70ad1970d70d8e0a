"""
配置文件 - 项目配置管理

All settings are assembled once at startup into a frozen ``Settings``
object; components receive the section they need by constructor.
Nested groups are read from the environment with ``__`` as delimiter,
e.g. ``STORAGE__BUCKET`` or ``GALLERY__PAGE_SIZE``.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal, Optional
from pydantic import model_validator


MIB = 1024 * 1024

DEFAULT_ALLOWED_TYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/avif",
    "video/mp4",
    "video/webm",
    "video/quicktime",
]

# Formats browsers cannot render inline
DEFAULT_UNSUPPORTED_TYPES = [
    "image/heic",
    "image/heif",
    "image/heic-sequence",
    "image/heif-sequence",
]

DEFAULT_UNSUPPORTED_HINT = (
    "HEIC/HEIF photos can't be shown in a browser. On iPhone open "
    "Settings > Camera > Formats and choose 'Most Compatible', then "
    "take or export the photo again as JPEG."
)


def _strip_url(v):
    if v is None:
        return v
    s = str(v).strip().strip('"').strip("'").strip("`").rstrip("/")
    return s or None


def _parse_list(v):
    """允许 JSON 字符串或逗号分隔字符串两种格式。"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        s = v.strip()
        if s.startswith("[") and s.endswith("]"):
            import json
            try:
                arr = json.loads(s)
                if isinstance(arr, list):
                    return arr
            except Exception:
                pass
        if "," in s:
            return [item.strip() for item in s.split(",") if item.strip()]
        return [s] if s else []
    return v


class ServerSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8000
    # Directory with the browser client (index.html etc.); not served when unset
    static_dir: Optional[str] = None


class StorageSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "local"  # local, s3
    bucket: Optional[str] = None
    region: Optional[str] = None
    endpoint: Optional[str] = None
    public_base_url: Optional[str] = None
    # S3 specific
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    s3_sse: Optional[str] = None
    # R2 and most S3-compatible endpoints need path-style addressing
    addressing_style: str = "path"
    # Local storage specific
    local_base_path: str = "/tmp/storage"
    # HMAC key for /media and /upload URLs; random per process when unset
    local_signing_secret: Optional[str] = None
    # Advanced settings
    max_retry_attempts: int = 3
    timeout: int = 30
    enable_ssl: bool = True

    @field_validator("public_base_url", "endpoint", mode="before")
    @classmethod
    def _clean_url(cls, v):
        return _strip_url(v)


class GallerySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Literal["bucket", "ledger", "drive"] = "bucket"
    # Display cap, not a pagination cursor
    page_size: int = Field(default=100, ge=1)
    # Files requested from a drive folder listing
    scan_limit: int = Field(default=1000, ge=1)
    signed_url_ttl: int = Field(default=3600, ge=60)
    sign_concurrency: int = Field(default=16, ge=1)
    ledger_path: str = "data/links.json"
    ledger_verify: bool = False


class UploadSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_size: int = 500 * MIB
    require_size: bool = True
    presign_ttl: int = Field(default=900, ge=60, le=7 * 24 * 3600)
    max_key_length: int = Field(default=200, ge=64)
    max_filename_length: int = Field(default=80, ge=8)
    allowed_types: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_TYPES))
    unsupported_types: list[str] = Field(default_factory=lambda: list(DEFAULT_UNSUPPORTED_TYPES))
    unsupported_hint: str = DEFAULT_UNSUPPORTED_HINT

    @field_validator("allowed_types", "unsupported_types", mode="before")
    @classmethod
    def _parse_types(cls, v):
        return [str(t).strip().lower() for t in _parse_list(v)]


class AuthSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    admin_password: Optional[str] = None
    # Optional shared secret gating uploads and link submission
    upload_password: Optional[str] = None
    session_ttl: int = Field(default=12 * 3600, ge=60)
    admin_cookie_name: str = "admin_session"
    upload_cookie_name: str = "upload_session"
    cookie_secure: bool = False


class StatsSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    path: str = "data/stats.json"


class NotesSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_url: Optional[str] = None
    api_key: Optional[str] = None
    table: str = "notes"
    timeout: float = 10.0

    @field_validator("base_url", mode="before")
    @classmethod
    def _clean_url(cls, v):
        return _strip_url(v)

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.api_key)


class DriveSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_base: str = "https://www.googleapis.com/drive/v3"
    folder_id: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = 30.0


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="reelbox")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    # CORS配置；凭据（cookie）仅对显式列出的来源放行
    CORS_ORIGINS: list = Field(default=["*"])

    # 分组配置：各子系统采用嵌套模型
    server: ServerSettings = Field(default_factory=ServerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    gallery: GallerySettings = Field(default_factory=GallerySettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    stats: StatsSettings = Field(default_factory=StatsSettings)
    notes: NotesSettings = Field(default_factory=NotesSettings)
    drive: DriveSettings = Field(default_factory=DriveSettings)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
        frozen=True,
    )

    @model_validator(mode="after")
    def _validate_gallery(self):
        if self.gallery.source == "drive" and self.gallery.page_size > self.gallery.scan_limit:
            raise ValueError("GALLERY__PAGE_SIZE must not exceed GALLERY__SCAN_LIMIT")
        if self.gallery.source == "drive" and not (self.drive.folder_id and self.drive.api_key):
            raise ValueError("GALLERY__SOURCE=drive requires DRIVE__FOLDER_ID and DRIVE__API_KEY")
        return self

    @property
    def cors_allow_credentials(self) -> bool:
        """A wildcard origin never receives cookies."""
        return bool(self.CORS_ORIGINS) and "*" not in self.CORS_ORIGINS

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        return _parse_list(v)


settings = Settings()
