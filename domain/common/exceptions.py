"""领域层业务异常定义，供领域、应用与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class InvalidRequestException(BusinessException):
    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(
            code=BusinessCode.PARAM_MISSING,
            message=message,
            error_type="InvalidRequest",
            field=field,
        )


class UnsupportedFormatException(BusinessException):
    """A format the browser cannot render inline; the user can fix it on the device."""

    def __init__(self, content_type: str, remediation: str):
        super().__init__(
            code=BusinessCode.UNSUPPORTED_FORMAT,
            message=remediation,
            error_type="UnsupportedFormat",
            details={"content_type": content_type},
            field="type",
        )


class InvalidTypeException(BusinessException):
    def __init__(self, content_type: str):
        super().__init__(
            code=BusinessCode.INVALID_CONTENT_TYPE,
            message=f"File type '{content_type}' is not allowed. Upload an image or a video.",
            error_type="InvalidType",
            details={"content_type": content_type},
            field="type",
        )


class TooLargeException(BusinessException):
    def __init__(self, size: float, max_size: int):
        max_mib = max_size // (1024 * 1024)
        super().__init__(
            code=BusinessCode.FILE_TOO_LARGE,
            message=f"File is too large. The maximum upload size is {max_mib} MiB.",
            error_type="TooLarge",
            details={"size": size, "max_size": max_size},
            field="size",
        )


class InvalidSizeException(BusinessException):
    def __init__(self, raw: Optional[str]):
        super().__init__(
            code=BusinessCode.INVALID_SIZE,
            message="File size must be a positive number of bytes.",
            error_type="InvalidSize",
            details={"size": raw},
            field="size",
        )


class UnauthorizedException(BusinessException):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            code=BusinessCode.UNAUTHORIZED,
            message=message,
            error_type="Unauthorized",
        )


class NotFoundException(BusinessException):
    def __init__(self, message: str = "Not found", *, details: Optional[dict] = None):
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message=message,
            error_type="NotFound",
            details=details,
        )


class BackendUnavailableException(BusinessException):
    """Storage, configuration or network failure.

    The message is what the client sees; keep internals in the log record.
    """

    def __init__(self, message: str = "Storage backend unavailable, please retry later", *, code: int = BusinessCode.STORAGE_ERROR):
        super().__init__(
            code=code,
            message=message,
            error_type="BackendUnavailable",
        )
