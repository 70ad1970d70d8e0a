"""Local file system storage provider implementation.

Objects live under ``local_base_path``. Browsers reach them through the
application's ``/media`` and ``/upload`` routes using HMAC-signed URLs, so
the same presign flow works without an object store.
"""
import hashlib
import json
import os
import secrets
from pathlib import Path
from typing import AsyncIterator, Optional
from datetime import datetime, timezone
import aiofiles
import aiofiles.os

from core.logging_config import get_logger
from ..base import LocallyServedProvider
from ..config import StorageConfig
from ..models import (
    UploadResult,
    StorageObject,
    PresignedRequest
)
from ..exceptions import (
    StorageError,
    NotFoundError,
    ValidationError
)
from ..utils import (
    guess_content_type,
    join_public_url,
    safe_join,
    sign_local_url,
    verify_local_signature,
)

logger = get_logger(__name__)

MEDIA_PATH = "/media"
UPLOAD_PATH = "/upload"

_HIDDEN_SUFFIXES = (".meta", ".part")


class LocalProvider(LocallyServedProvider):
    """Local file system storage provider."""

    def __init__(self, config: StorageConfig):
        """Initialize local storage provider.

        Args:
            config: Storage configuration
        """
        self.config = config
        self.base_path = Path(config.local_base_path).resolve()
        # Without a configured secret, signed URLs are valid for this process only
        self.signing_secret = config.local_signing_secret or secrets.token_hex(32)

        self.base_path.mkdir(parents=True, exist_ok=True)

    async def upload_stream(
        self,
        chunks: AsyncIterator[bytes],
        key: str,
        content_type: Optional[str] = None,
        max_size: Optional[int] = None,
    ) -> UploadResult:
        """Write a streamed body to a temp file, then move it into place."""
        file_path = self._safe_path(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = file_path.parent / f"{file_path.name}.{secrets.token_hex(4)}.part"

        size = 0
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                async for chunk in chunks:
                    size += len(chunk)
                    if max_size is not None and size > max_size:
                        raise ValidationError(f"Upload exceeds {max_size} bytes: {key}")
                    await f.write(chunk)
            os.replace(temp_path, file_path)
        except OSError as e:
            await self._discard(temp_path)
            raise StorageError(f"Failed to upload {key}: {e}") from e
        except Exception:
            # Size limit or an error raised by the body iterator itself
            await self._discard(temp_path)
            raise

        ctype = content_type or guess_content_type(key)
        await self._save_metadata(file_path, ctype)

        logger.info("local_uploaded", key=key, size=size)
        return UploadResult(
            key=key,
            etag=await self._calculate_etag(file_path),
            size=size,
            content_type=ctype,
            url=self.public_url(key),
        )

    async def delete(self, key: str) -> bool:
        """Delete file from local storage; False when it did not exist."""
        try:
            file_path = self._safe_path(key)

            if file_path.exists():
                await aiofiles.os.remove(file_path)

                meta_path = self._metadata_path(file_path)
                if meta_path.exists():
                    await aiofiles.os.remove(meta_path)

                logger.info("local_deleted", key=key)
                return True

            return False

        except ValidationError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e

    async def iter_objects(self, prefix: str = "") -> AsyncIterator[StorageObject]:
        """Yield every stored file in key order, like a bucket listing."""
        clean_prefix = prefix.lstrip("/") if prefix else ""
        try:
            keys = sorted(
                path.relative_to(self.base_path).as_posix()
                for path in self.base_path.rglob("*")
                if path.is_file()
                and not path.name.endswith(_HIDDEN_SUFFIXES)
                and not path.name.startswith(".")
            )
        except OSError as e:
            raise StorageError(f"Failed to list objects with prefix '{prefix}': {e}") from e

        for key in keys:
            if clean_prefix and not key.startswith(clean_prefix):
                continue
            path = self.base_path / key
            try:
                stat = path.stat()
            except FileNotFoundError:
                # Deleted after the walk
                continue
            meta = await self._load_metadata(path)
            yield StorageObject(
                key=key,
                size=stat.st_size,
                last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                content_type=meta.get("content_type") or guess_content_type(key),
            )

    async def generate_presigned_url(
        self,
        key: str,
        expires_in: int = 3600,
        method: str = "GET",
        content_type: Optional[str] = None,
    ) -> PresignedRequest:
        """Generate a signed URL served by this application."""
        self._safe_path(key)
        if method == "GET":
            url = sign_local_url(self.signing_secret, MEDIA_PATH, key, "GET", expires_in)
            return PresignedRequest(url=url, method="GET", expires_in=expires_in)
        if method == "PUT":
            url = sign_local_url(self.signing_secret, UPLOAD_PATH, key, "PUT", expires_in, content_type)
            return PresignedRequest(
                url=url,
                method="PUT",
                expires_in=expires_in,
                headers={"Content-Type": content_type or "application/octet-stream"},
            )
        raise ValueError(f"Unsupported method: {method}")

    def public_url(self, key: str) -> Optional[str]:
        """Get public URL for file."""
        if self.config.public_base_url:
            return join_public_url(self.config.public_base_url, key)
        return None

    def resolve_path(self, key: str) -> Path:
        """Absolute path of an existing object, for streaming responses."""
        file_path = self._safe_path(key)
        if not file_path.is_file():
            raise NotFoundError(f"File not found: {key}")
        return file_path

    def verify_signature(
        self,
        key: str,
        method: str,
        expires: int,
        signature: str,
        content_type: Optional[str] = None,
    ) -> bool:
        """Check a URL produced by ``generate_presigned_url``."""
        return verify_local_signature(
            self.signing_secret, key, method, expires, signature, content_type
        )

    async def health_check(self) -> bool:
        """Check local storage accessibility."""
        try:
            test_file = self.base_path / ".health_check"
            test_file.touch()
            test_file.unlink()
            logger.info("local_health_check_passed", base_path=str(self.base_path))
            return True
        except Exception as e:
            logger.error("local_health_check_failed", error=str(e))
            return False

    def _safe_path(self, key: str) -> Path:
        return safe_join(str(self.base_path), key)

    def _metadata_path(self, file_path: Path) -> Path:
        return file_path.parent / f"{file_path.name}.meta"

    async def _discard(self, path: Path) -> None:
        if path.exists():
            await aiofiles.os.remove(path)

    async def _save_metadata(self, file_path: Path, content_type: str) -> None:
        """Remember the declared content type in a sidecar file."""
        async with aiofiles.open(self._metadata_path(file_path), "w") as f:
            await f.write(json.dumps({"content_type": content_type}))

    async def _load_metadata(self, file_path: Path) -> dict:
        """Load metadata from sidecar file."""
        meta_path = self._metadata_path(file_path)
        if not meta_path.exists():
            return {}

        try:
            async with aiofiles.open(meta_path, "r") as f:
                return json.loads(await f.read())
        except (OSError, ValueError):
            return {}

    async def _calculate_etag(self, file_path: Path) -> str:
        hasher = hashlib.md5()
        async with aiofiles.open(file_path, "rb") as f:
            while True:
                chunk = await f.read(65536)
                if not chunk:
                    break
                hasher.update(chunk)
        return hasher.hexdigest()


async def build_local_provider(config: StorageConfig) -> LocalProvider:
    """Build local storage provider.

    Args:
        config: Storage configuration

    Returns:
        Configured local provider instance
    """
    provider = LocalProvider(config)

    if not await provider.health_check():
        raise StorageError("Failed to access local storage")

    return provider
