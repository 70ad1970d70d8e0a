"""Upload admission rules.

Checks run in a fixed order and the first failure wins:

1. content type a browser cannot display (HEIC/HEIF) -> UnsupportedFormat
2. content type outside the allow-list -> InvalidType
3. declared size above the ceiling -> TooLarge
4. declared size not a positive finite number -> InvalidSize
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from domain.common.exceptions import (
    InvalidRequestException,
    InvalidSizeException,
    InvalidTypeException,
    TooLargeException,
    UnsupportedFormatException,
)

_INVALID = object()


def parse_declared_size(raw: Union[str, int, float, None]) -> Union[float, None, object]:
    """Parse the ``size`` parameter.

    Returns None when absent, a float when numeric, and a sentinel for
    garbage so that callers can tell "not sent" from "sent but invalid".
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return float(raw)
    text = str(raw).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return _INVALID


def normalize_content_type(content_type: str) -> str:
    """``Image/JPEG; charset=binary`` -> ``image/jpeg``"""
    return content_type.split(";", 1)[0].strip().lower()


@dataclass(frozen=True)
class AdmissionPolicy:
    allowed_types: frozenset
    unsupported_types: frozenset
    unsupported_hint: str
    max_size: int
    require_size: bool = True

    @classmethod
    def create(
        cls,
        allowed_types: Iterable[str],
        unsupported_types: Iterable[str],
        unsupported_hint: str,
        max_size: int,
        require_size: bool = True,
    ) -> "AdmissionPolicy":
        return cls(
            allowed_types=frozenset(normalize_content_type(t) for t in allowed_types),
            unsupported_types=frozenset(normalize_content_type(t) for t in unsupported_types),
            unsupported_hint=unsupported_hint,
            max_size=max_size,
            require_size=require_size,
        )

    def check(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        declared_size: Union[str, int, float, None] = None,
    ) -> Optional[int]:
        """Validate a presign request; returns the accepted size in bytes, if any."""
        if not filename or not filename.strip() or not content_type or not content_type.strip():
            raise InvalidRequestException(
                "Missing filename or type",
                field="filename" if not filename or not filename.strip() else "type",
            )

        ctype = normalize_content_type(content_type)
        if ctype in self.unsupported_types:
            raise UnsupportedFormatException(ctype, self.unsupported_hint)
        if ctype not in self.allowed_types:
            raise InvalidTypeException(ctype)

        size = parse_declared_size(declared_size)
        if isinstance(size, float) and size > self.max_size:
            raise TooLargeException(size, self.max_size)

        if size is None:
            if self.require_size:
                raise InvalidSizeException(None)
            return None
        if size is _INVALID or not math.isfinite(size) or size <= 0:
            raise InvalidSizeException(str(declared_size))
        return int(size)
