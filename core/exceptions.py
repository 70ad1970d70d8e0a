"""
自定义异常映射与全局异常处理器
"""
import uuid
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.responses import JSONResponse
from starlette import status as http_status

from .response import error_response
from shared.codes import BusinessCode
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException


_STATUS_BY_CODE = {
    BusinessCode.PARAM_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_MISSING: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_400_BAD_REQUEST,

    BusinessCode.UNSUPPORTED_FORMAT: http_status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    BusinessCode.INVALID_CONTENT_TYPE: http_status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    BusinessCode.FILE_TOO_LARGE: http_status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    BusinessCode.INVALID_SIZE: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,

    BusinessCode.UNAUTHORIZED: http_status.HTTP_401_UNAUTHORIZED,

    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.STORAGE_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.NETWORK_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_CODE_BY_STATUS = {
    400: BusinessCode.PARAM_ERROR,
    401: BusinessCode.UNAUTHORIZED,
    404: BusinessCode.NOT_FOUND,
    413: BusinessCode.FILE_TOO_LARGE,
    415: BusinessCode.INVALID_CONTENT_TYPE,
}


def business_code_to_http_status(code: int) -> int:
    """根据业务码映射HTTP状态码（默认400）。"""
    try:
        return _STATUS_BY_CODE.get(BusinessCode(code), http_status.HTTP_400_BAD_REQUEST)
    except ValueError:
        return http_status.HTTP_400_BAD_REQUEST


def _request_id(request: Request) -> str:
    return getattr(getattr(request, "state", object()), "request_id", None) or str(uuid.uuid4())


def register_exception_handlers(app: FastAPI):
    """
    注册全局异常处理器

    Args:
        app: FastAPI应用实例
    """

    logger = get_logger(__name__)

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        """处理业务异常"""
        status_code = business_code_to_http_status(exc.code)
        if status_code >= 500:
            logger.error(
                "backend_error",
                error_type=exc.error_type,
                error=exc.message,
                cause=repr(exc.__cause__) if exc.__cause__ else None,
            )
        content = error_response(
            code=exc.code,
            message=exc.message,
            error_type=exc.error_type,
            field=exc.field,
            request_id=_request_id(request),
        )
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """处理参数验证异常：缺失或格式错误的参数一律 400"""
        errors = exc.errors()
        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", [])[1:]) or None
        reason = first_error.get("msg", "invalid request")
        message = f"Invalid parameter '{field}': {reason}" if field else f"Invalid request: {reason}"

        content = error_response(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="InvalidRequest",
            field=field,
            request_id=_request_id(request),
        )
        return JSONResponse(status_code=http_status.HTTP_400_BAD_REQUEST, content=content)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """处理HTTP异常（未知路由、静态资源缺失、方法不允许等）"""
        code = _CODE_BY_STATUS.get(exc.status_code, BusinessCode.SYSTEM_ERROR)
        error_type = "NotFound" if exc.status_code == 404 else "HTTPError"
        content = error_response(
            code=code,
            message=str(exc.detail),
            error_type=error_type,
            request_id=_request_id(request),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """处理所有未捕获的异常"""
        request_id = _request_id(request)
        logger.error(
            "unhandled_exception",
            request_id=request_id,
            error=str(exc),
            exc_info=True,
        )
        content = error_response(
            code=BusinessCode.SYSTEM_ERROR,
            message="Internal server error",
            error_type="SystemError",
            request_id=request_id,
        )
        return JSONResponse(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
        )
