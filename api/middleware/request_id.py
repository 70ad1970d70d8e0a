"""
Request ID 中间件
用于生成或透传追踪ID，并绑定到structlog上下文
"""
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

import structlog


def resolve_client_ip(request: Request) -> str:
    """
    获取客户端真实IP

    依次尝试 X-Forwarded-For（取第一个）、X-Real-IP、连接地址。
    """
    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    client_ip = request.headers.get("X-Real-IP")
    if client_ip:
        return client_ip
    return request.client.host if request.client else "unknown"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Request ID 追踪中间件

    功能：
    1. 从请求头获取或生成新的request_id
    2. 绑定到structlog上下文，供日志系统使用
    3. 在响应头中返回request_id
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        client_ip = resolve_client_ip(request)

        # 设置到request.state以便在应用内部访问
        request.state.request_id = request_id
        request.state.client_ip = client_ip

        # 绑定到structlog上下文
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=client_ip,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers[self.HEADER_NAME] = request_id
        return response
