"""
Shared business codes used across layers (Domain/Core/API).

This package exposes BusinessCode at `shared.codes` so the exception
hierarchy and the HTTP mapping agree on a single set of values.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """Unified business status codes (single source of truth)."""

    # Parameter errors (1xxxx)
    PARAM_ERROR = 10000
    PARAM_MISSING = 10001
    PARAM_VALIDATION_ERROR = 10003

    # Upload policy errors (2xxxx)
    UNSUPPORTED_FORMAT = 20001
    INVALID_CONTENT_TYPE = 20002
    FILE_TOO_LARGE = 20003
    INVALID_SIZE = 20004
    NOT_FOUND = 20006  # Generic resource not found

    # Authorization errors (3xxxx)
    UNAUTHORIZED = 30001

    # System errors (4xxxx)
    SYSTEM_ERROR = 40000
    STORAGE_ERROR = 40001
    NETWORK_ERROR = 40002


__all__ = ["BusinessCode"]
