"""Storage configuration models."""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class StorageType(str, Enum):
    """Storage provider types."""
    S3 = "s3"
    LOCAL = "local"


class StorageConfig(BaseModel):
    """Storage configuration model."""
    model_config = ConfigDict(use_enum_values=True, frozen=True)

    # Common settings
    type: StorageType = StorageType.LOCAL
    bucket: Optional[str] = None
    region: Optional[str] = None
    endpoint: Optional[str] = None
    public_base_url: Optional[str] = None  # Public/CDN domain

    # S3 specific (also used for R2 and other S3-compatible services)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    s3_sse: Optional[str] = None  # Server-side encryption
    addressing_style: str = "path"

    # Local specific
    local_base_path: str = "/tmp/storage"
    # HMAC secret for the local provider's signed /media and /upload URLs
    local_signing_secret: Optional[str] = None

    # Advanced settings
    max_retry_attempts: int = 3
    timeout: int = 30
    enable_ssl: bool = True
