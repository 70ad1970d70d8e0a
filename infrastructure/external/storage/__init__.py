"""Storage service entry point and lifecycle management."""
from typing import Optional

from core.config import StorageSettings
from core.logging_config import get_logger
from .base import LocallyServedProvider, StorageProvider
from .config import StorageConfig, StorageType
from .factory import create_provider, register_provider
from .models import (
    UploadResult,
    StorageObject,
    PresignedRequest
)
from .exceptions import (
    StorageError,
    NotFoundError,
    PermissionDeniedError,
    TransientError,
    ConfigurationError,
    ValidationError
)
from .utils import guess_content_type, join_public_url, safe_join

logger = get_logger(__name__)

# Global storage client instance
_storage_client: Optional[StorageProvider] = None
_storage_config: Optional[StorageConfig] = None


def build_storage_config(s: StorageSettings) -> StorageConfig:
    """Assemble StorageConfig from the ``storage`` settings group.

    Keeps core.config.settings the single source of truth for configuration.
    """
    return StorageConfig(
        type=s.type or StorageType.LOCAL,
        bucket=s.bucket,
        region=s.region,
        endpoint=s.endpoint,
        public_base_url=s.public_base_url,
        aws_access_key_id=s.aws_access_key_id,
        aws_secret_access_key=s.aws_secret_access_key,
        s3_sse=s.s3_sse,
        addressing_style=s.addressing_style,
        local_base_path=s.local_base_path,
        local_signing_secret=s.local_signing_secret,
        max_retry_attempts=s.max_retry_attempts,
        timeout=s.timeout,
        enable_ssl=s.enable_ssl,
    )


async def init_storage_client(config: StorageConfig) -> StorageProvider:
    """Initialize storage client.

    Creates the storage provider based on configuration. Calling it again
    after a successful init returns the existing client.
    """
    global _storage_client, _storage_config

    _storage_config = config
    if _storage_client is not None:
        logger.warning("storage_client_already_initialized")
        return _storage_client

    _storage_client = await create_provider(config)
    logger.info(
        "storage_client_initialized",
        provider=config.type,
        bucket=config.bucket
    )
    return _storage_client


def get_storage_client() -> Optional[StorageProvider]:
    """Get storage client instance, or None if not initialized."""
    return _storage_client


async def shutdown_storage_client() -> None:
    """Shutdown storage client. Providers hold no connections needing cleanup."""
    global _storage_client

    if _storage_client is None:
        return
    _storage_client = None
    logger.info("storage_client_shutdown")


async def get_storage() -> StorageProvider:
    """FastAPI dependency for storage service.

    A failed startup init (bucket unreachable at boot) is retried lazily here.

    Raises:
        ConfigurationError: If storage cannot be initialized
    """
    client = get_storage_client()
    if client is not None:
        return client
    if _storage_config is None:
        raise ConfigurationError(
            "Storage client not initialized. "
            "Call init_storage_client() during startup."
        )
    return await init_storage_client(_storage_config)


__all__ = [
    # Lifecycle
    "build_storage_config",
    "init_storage_client",
    "get_storage_client",
    "shutdown_storage_client",
    "get_storage",
    "create_provider",
    "register_provider",

    # Configuration
    "StorageConfig",
    "StorageType",

    # Base types
    "StorageProvider",
    "LocallyServedProvider",

    # Models
    "UploadResult",
    "StorageObject",
    "PresignedRequest",

    # Exceptions
    "StorageError",
    "NotFoundError",
    "PermissionDeniedError",
    "TransientError",
    "ConfigurationError",
    "ValidationError",

    # Utils
    "guess_content_type",
    "join_public_url",
    "safe_join",
]
