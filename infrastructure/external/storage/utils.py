"""Storage utility functions shared by providers."""
import hashlib
import hmac
import mimetypes
import time
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlencode

from .exceptions import ValidationError


def guess_content_type(filename: str) -> str:
    """Guess content type from filename.

    Args:
        filename: File name or path

    Returns:
        MIME type string
    """
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"


def quote_key(key: str) -> str:
    """URL-escape a storage key, keeping path separators."""
    return quote(key, safe="/-_.~")


def join_public_url(base: str, key: str) -> str:
    """Concatenate a public base URL and an escaped key."""
    return f"{base.rstrip('/')}/{quote_key(key)}"


def safe_join(base: str, relative: str) -> Path:
    """Safely join paths preventing traversal attacks.

    Args:
        base: Base path
        relative: Relative path to join

    Returns:
        Safe joined path

    Raises:
        ValidationError: If path would escape base
    """
    clean = relative.lstrip("/")

    base_path = Path(base).resolve()
    full_path = (base_path / clean).resolve()

    # Ensure result is within base using relative_to guard
    try:
        full_path.relative_to(base_path)
    except ValueError:
        raise ValidationError(f"Path escapes base directory: {relative}")
    if full_path == base_path:
        raise ValidationError(f"Empty key: {relative!r}")

    return full_path


def calculate_etag(data: bytes) -> str:
    """Calculate an MD5 ETag for data."""
    return hashlib.md5(data).hexdigest()


# Local signed URLs
def _signature(secret: str, method: str, key: str, expires: int, content_type: str) -> str:
    payload = "\n".join([method.upper(), key, str(expires), content_type])
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def sign_local_url(
    secret: str,
    path_prefix: str,
    key: str,
    method: str,
    expires_in: int,
    content_type: Optional[str] = None,
    now: Optional[float] = None,
) -> str:
    """Build a relative URL carrying an expiry and an HMAC signature.

    Example:
        sign_local_url(s, "/upload", "a.jpg", "PUT", 900, "image/jpeg")
        -> "/upload/a.jpg?expires=...&sig=..."
    """
    expires = int((now if now is not None else time.time()) + expires_in)
    sig = _signature(secret, method, key, expires, content_type or "")
    query = urlencode({"expires": expires, "sig": sig})
    return f"{path_prefix.rstrip('/')}/{quote_key(key)}?{query}"


def verify_local_signature(
    secret: str,
    key: str,
    method: str,
    expires: int,
    sig: str,
    content_type: Optional[str] = None,
    now: Optional[float] = None,
) -> bool:
    """Check a signature produced by ``sign_local_url`` and its expiry."""
    if expires < (now if now is not None else time.time()):
        return False
    expected = _signature(secret, method, key, expires, content_type or "")
    return hmac.compare_digest(expected, sig)
