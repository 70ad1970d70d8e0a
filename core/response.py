"""
统一错误响应格式定义

Success bodies are plain DTOs; every failure renders as ``{"error": "..."}``
plus a few diagnostic fields.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from datetime import datetime, timezone


class ErrorResponse(BaseModel):
    """错误响应"""
    model_config = ConfigDict(populate_by_name=True)

    error: str
    type: str
    code: int
    field: Optional[str] = None
    request_id: Optional[str] = Field(default=None, alias="requestId")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer('timestamp')
    def serialize_timestamp(self, timestamp: datetime) -> str:
        """序列化时间戳为 UTC ISO8601，统一使用 Z 结尾"""
        ts = timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        else:
            ts = ts.astimezone(timezone.utc)
        return ts.isoformat().replace("+00:00", "Z")


def error_response(
    code: int,
    message: str,
    error_type: str = "BusinessError",
    field: Optional[str] = None,
    request_id: Optional[str] = None
) -> dict:
    """
    创建错误响应体

    Args:
        code: 业务状态码
        message: 面向用户的错误消息
        error_type: 错误类型
        field: 错误字段
        request_id: 请求ID

    Returns:
        dict: 可直接作为 JSONResponse content 的字典
    """
    body = ErrorResponse(
        error=message,
        type=error_type,
        code=int(code),
        field=field,
        request_id=request_id,
    )
    return body.model_dump(mode="json", by_alias=True, exclude_none=True)
