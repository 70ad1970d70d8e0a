"""AWS S3 storage provider implementation (also serves R2 and other S3-compatible endpoints)."""
from typing import AsyncIterator, Optional, Any
import anyio
from functools import partial

from core.logging_config import get_logger
from ..base import StorageProvider
from ..config import StorageConfig
from ..models import (
    UploadResult,
    StorageObject,
    PresignedRequest
)
from ..exceptions import (
    StorageError,
    NotFoundError,
    PermissionDeniedError,
    TransientError,
    ConfigurationError,
    ValidationError,
)
from ..utils import calculate_etag, join_public_url

logger = get_logger(__name__)

# A single ListObjectsV2 call never returns more than this
_LIST_PAGE_MAX = 1000

_TRANSIENT_ERROR_CLASSES = {
    "EndpointConnectionError",
    "ConnectTimeoutError",
    "ReadTimeoutError",
    "ConnectionClosedError",
}


class S3Provider(StorageProvider):
    """AWS S3 storage provider."""

    def __init__(
        self,
        client: Any,  # boto3 S3 client
        config: StorageConfig
    ):
        """Initialize S3 provider.

        Args:
            client: Boto3 S3 client instance
            config: Storage configuration
        """
        self.client = client
        self.config = config
        self.bucket = config.bucket
        self.region = config.region or "us-east-1"

    async def _put_object(
        self,
        body: bytes,
        key: str,
        content_type: Optional[str] = None
    ) -> UploadResult:
        """Put one object in a single request."""
        try:
            extra_args = {}
            if content_type:
                extra_args["ContentType"] = content_type
            if self.config.s3_sse:
                extra_args["ServerSideEncryption"] = self.config.s3_sse

            # Upload using thread pool for sync SDK
            response = await anyio.to_thread.run_sync(
                partial(
                    self.client.put_object,
                    Bucket=self.bucket,
                    Key=key,
                    Body=body,
                    **extra_args
                )
            )

            # Use server returned ETag if available; else fallback to local hash
            etag = (response or {}).get("ETag", "").strip('"') or calculate_etag(body)

            logger.info("s3_uploaded", key=key, size=len(body))
            return UploadResult(
                key=key,
                etag=etag,
                size=len(body),
                content_type=content_type,
                url=self.public_url(key),
            )

        except Exception as e:
            self._handle_exception(e, f"upload {key}")

    async def upload_stream(
        self,
        chunks: AsyncIterator[bytes],
        key: str,
        content_type: Optional[str] = None,
        max_size: Optional[int] = None,
    ) -> UploadResult:
        """Buffer a streamed body and put it as a single object."""
        buf = bytearray()
        async for chunk in chunks:
            buf.extend(chunk)
            if max_size is not None and len(buf) > max_size:
                raise ValidationError(f"Upload exceeds {max_size} bytes: {key}")
        return await self._put_object(bytes(buf), key, content_type=content_type)

    async def delete(self, key: str) -> bool:
        """Delete file from S3. Deleting a missing key succeeds."""
        try:
            await anyio.to_thread.run_sync(
                partial(
                    self.client.delete_object,
                    Bucket=self.bucket,
                    Key=key
                )
            )
            logger.info("s3_deleted", key=key)
            return True
        except Exception as e:
            self._handle_exception(e, f"delete {key}")

    async def iter_objects(self, prefix: str = "") -> AsyncIterator[StorageObject]:
        """Yield every object under ``prefix``, following continuation tokens.

        Only one listing page is held in memory at a time.
        """
        token: Optional[str] = None
        while True:
            params = {"Bucket": self.bucket, "Prefix": prefix, "MaxKeys": _LIST_PAGE_MAX}
            if token:
                params["ContinuationToken"] = token
            try:
                response = await anyio.to_thread.run_sync(
                    partial(self.client.list_objects_v2, **params)
                )
            except Exception as e:
                self._handle_exception(e, f"list objects {prefix}")

            for obj in response.get("Contents", []):
                yield StorageObject(
                    key=obj.get("Key", ""),
                    size=obj.get("Size", 0),
                    etag=obj.get("ETag", "").strip('"'),
                    last_modified=obj.get("LastModified")
                )

            token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not token:
                return

    async def generate_presigned_url(
        self,
        key: str,
        expires_in: int = 3600,
        method: str = "GET",
        content_type: Optional[str] = None,
    ) -> PresignedRequest:
        """Generate presigned URL for S3.

        Signing is a local computation in botocore; it has no effect on the
        bucket and needs no network round trip.
        """
        try:
            if method == "GET":
                url = await anyio.to_thread.run_sync(
                    partial(
                        self.client.generate_presigned_url,
                        ClientMethod="get_object",
                        Params={"Bucket": self.bucket, "Key": key},
                        ExpiresIn=expires_in
                    )
                )
                return PresignedRequest(
                    url=url,
                    method="GET",
                    expires_in=expires_in
                )

            elif method == "PUT":
                url = await anyio.to_thread.run_sync(
                    partial(
                        self.client.generate_presigned_url,
                        ClientMethod="put_object",
                        Params={
                            "Bucket": self.bucket,
                            "Key": key,
                            **({"ContentType": content_type} if content_type else {}),
                        },
                        ExpiresIn=expires_in
                    )
                )
                return PresignedRequest(
                    url=url,
                    method="PUT",
                    expires_in=expires_in,
                    headers={
                        "Content-Type": content_type or "application/octet-stream"
                    }
                )

            else:
                raise ValueError(f"Unsupported method: {method}")

        except ValueError:
            raise
        except Exception as e:
            self._handle_exception(e, f"generate presigned URL {key}")

    def public_url(self, key: str) -> Optional[str]:
        """Get public/CDN URL for file; None for private buckets."""
        if self.config.public_base_url:
            return join_public_url(self.config.public_base_url, key)
        return None

    async def health_check(self) -> bool:
        """Check S3 connectivity."""
        try:
            await anyio.to_thread.run_sync(
                partial(
                    self.client.head_bucket,
                    Bucket=self.bucket
                )
            )
            logger.info("s3_health_check_passed", bucket=self.bucket)
            return True
        except Exception as e:
            logger.error("s3_health_check_failed", bucket=self.bucket, error=str(e))
            return False

    def _handle_exception(self, e: Exception, operation: str) -> None:
        """Map S3 exceptions to storage exceptions."""
        error_code = getattr(e, "response", {}).get("Error", {}).get("Code", "")

        if error_code in ["NoSuchKey", "404"]:
            raise NotFoundError(f"Object not found: {operation}") from e
        elif error_code in ["AccessDenied", "403", "InvalidAccessKeyId", "SignatureDoesNotMatch"]:
            raise PermissionDeniedError(f"Access denied: {operation}") from e
        elif error_code in ["RequestTimeout", "SlowDown", "ServiceUnavailable"] \
                or type(e).__name__ in _TRANSIENT_ERROR_CLASSES:
            raise TransientError(f"Transient error: {operation}: {e}") from e
        else:
            raise StorageError(f"S3 error during {operation}: {e}") from e


async def build_s3_provider(config: StorageConfig) -> S3Provider:
    """Build S3 storage provider.

    Args:
        config: Storage configuration

    Returns:
        Configured S3 provider instance
    """
    if not config.bucket:
        raise ConfigurationError("S3 bucket name is required")

    import boto3
    from botocore.config import Config as BotoConfig

    # Build boto3 client config; every call is bounded by these timeouts
    boto_config = BotoConfig(
        region_name=config.region or "auto",
        signature_version="s3v4",
        s3={"addressing_style": config.addressing_style},
        retries={
            "max_attempts": config.max_retry_attempts,
            "mode": "standard"
        },
        connect_timeout=config.timeout,
        read_timeout=config.timeout
    )

    client_args = {
        "service_name": "s3",
        "config": boto_config
    }

    if config.aws_access_key_id and config.aws_secret_access_key:
        client_args.update({
            "aws_access_key_id": config.aws_access_key_id,
            "aws_secret_access_key": config.aws_secret_access_key
        })

    if config.endpoint:
        client_args["endpoint_url"] = config.endpoint
        client_args["use_ssl"] = config.enable_ssl

    client = boto3.client(**client_args)

    provider = S3Provider(client, config)

    # Check connectivity
    if not await provider.health_check():
        raise ConfigurationError("Failed to connect to S3")

    return provider
