"""Application-level storage helpers to avoid infra coupling."""
from __future__ import annotations

import re
import time
import unicodedata
import uuid
from typing import Optional
from urllib.parse import quote

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")
_DASH_RUNS = re.compile(r"-{2,}")
# Longest suffix still treated as an extension when truncating
_MAX_EXT_LENGTH = 16

FALLBACK_NAME = "upload"


def sanitize_filename(filename: Optional[str], max_length: int = 80) -> str:
    """Reduce an untrusted filename to ``[A-Za-z0-9._-]``, keeping the extension.

    >>> sanitize_filename("../../Été 2024 (1).JPG")
    'Ete-2024-1-.JPG'
    """
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    name = _UNSAFE.sub("-", name)
    name = _DASH_RUNS.sub("-", name)
    name = name.lstrip(".-")
    if not name:
        return FALLBACK_NAME

    if len(name) > max_length:
        stem, dot, ext = name.rpartition(".")
        if dot and stem and 0 < len(ext) <= _MAX_EXT_LENGTH and len(ext) + 2 <= max_length:
            name = f"{stem[:max_length - len(ext) - 1].rstrip('.-')}.{ext}"
        else:
            name = name[:max_length]
        name = name.lstrip(".-")
    return name or FALLBACK_NAME


def build_upload_key(
    filename: Optional[str],
    max_length: int = 200,
    max_filename_length: int = 80,
    now_ms: Optional[int] = None,
) -> str:
    """``<epoch-millis>-<uuid4 hex>-<sanitized filename>``"""
    ms = now_ms if now_ms is not None else int(time.time() * 1000)
    prefix = f"{ms}-{uuid.uuid4().hex}-"
    budget = max(min(max_filename_length, max_length - len(prefix)), 1)
    return prefix + sanitize_filename(filename, budget)


def public_object_url(base_url: str, key: str) -> str:
    """Public URL of an object; the key is escaped but keeps its slashes."""
    return f"{base_url.rstrip('/')}/{quote(key, safe='/-_.~')}"
