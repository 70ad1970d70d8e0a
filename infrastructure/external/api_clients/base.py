"""
REST API客户端基类

提供通用的HTTP请求功能，包括：
- 自动重试（429/5xx、超时、网络错误）
- 错误处理
- 请求/响应日志
- 超时控制
"""
import asyncio
import json
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass
from enum import Enum
import httpx
import logging
import time

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


class HTTPMethod(Enum):
    """HTTP方法枚举"""
    GET = "GET"
    POST = "POST"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass
class APIResponse:
    """API响应封装"""
    status_code: int
    headers: Dict[str, str]
    data: Any
    raw_content: bytes
    elapsed_ms: float
    request_id: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    def json(self) -> Any:
        """获取JSON响应"""
        if self.data is not None:
            return self.data
        if not self.raw_content:
            return None
        return json.loads(self.raw_content)


class APIError(Exception):
    """API错误基类"""
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[APIResponse] = None,
        request_id: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        self.request_id = request_id
        super().__init__(self.message)

    def __str__(self):
        parts = [self.message]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.request_id:
            parts.append(f"Request ID: {self.request_id}")
        return " | ".join(parts)


class AuthenticationError(APIError):
    """认证错误"""


class NotFoundError(APIError):
    """资源未找到错误"""


class RetryableAPIError(APIError):
    """可重试的API错误"""

    def __init__(self, message: str, status_code: Optional[int], response: Optional[APIResponse], retry_after: Optional[float] = None):
        super().__init__(message=message, status_code=status_code, response=response, request_id=response.request_id if response else None)
        self.retry_after = retry_after


RETRY_STATUS_CODES = {429, 500, 502, 503, 504}

# Never wait longer than this on a Retry-After header
_MAX_RETRY_AFTER = 5.0


class BaseAPIClient:
    """
    REST API客户端基类

    子类负责拼装端点与请求头；本类负责重试、超时与错误映射。
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        初始化API客户端

        Args:
            base_url: API基础URL
            timeout: 单次请求超时时间（秒）
            max_retries: 最大重试次数
            retry_delay: 重试延迟（秒）
            headers: 默认请求头
            transport: 自定义传输层（测试中注入 httpx.MockTransport）
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport

        self.default_headers = {
            "Accept": "application/json",
            "User-Agent": "reelbox/1.0",
        }
        if headers:
            self.default_headers.update(headers)

        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """获取或创建HTTP客户端"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """关闭HTTP客户端"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _build_url(self, endpoint: str) -> str:
        endpoint = endpoint.lstrip('/')
        return f"{self.base_url}/{endpoint}" if endpoint else self.base_url

    def _handle_error_response(self, status_code: int, response: APIResponse):
        """把错误状态码映射为异常"""
        error_map = {
            401: AuthenticationError,
            403: AuthenticationError,
            404: NotFoundError,
        }
        error_class = error_map.get(status_code, APIError)

        error_message = f"API request failed with status {status_code}"
        if isinstance(response.data, dict):
            error_message = (
                response.data.get("message")
                or response.data.get("error")
                or response.data.get("detail")
                or error_message
            )
            if isinstance(error_message, dict):
                error_message = error_message.get("message") or str(error_message)

        raise error_class(
            message=str(error_message),
            status_code=status_code,
            response=response,
            request_id=response.request_id
        )

    async def _request(
        self,
        method: Union[str, HTTPMethod],
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> APIResponse:
        """
        发送HTTP请求

        Raises:
            APIError: 重试耗尽或不可重试的错误
        """
        if isinstance(method, HTTPMethod):
            method = method.value

        url = self._build_url(endpoint)
        request_headers = {**self.default_headers}
        if headers:
            request_headers.update(headers)

        async def _send_once() -> APIResponse:
            start = time.perf_counter()
            response = await self.client.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                headers=request_headers,
            )
            elapsed = (time.perf_counter() - start) * 1000

            response_data = None
            if "application/json" in response.headers.get("content-type", ""):
                try:
                    response_data = response.json()
                except json.JSONDecodeError:
                    response_data = None

            api_response = APIResponse(
                status_code=response.status_code,
                headers=dict(response.headers),
                data=response_data,
                raw_content=response.content,
                elapsed_ms=elapsed,
                request_id=response.headers.get("x-request-id")
            )
            logger.debug("api_response %s %s -> %s (%.1fms)", method, url, api_response.status_code, elapsed)

            if api_response.is_error and api_response.status_code in RETRY_STATUS_CODES:
                retry_after: Optional[float] = None
                if api_response.status_code == 429:
                    try:
                        retry_after = float(api_response.headers.get("retry-after") or 0) or None
                    except (TypeError, ValueError):
                        retry_after = None
                    if retry_after:
                        await asyncio.sleep(min(retry_after, _MAX_RETRY_AFTER))

                raise RetryableAPIError(
                    message=f"Transient API error with status {api_response.status_code}",
                    status_code=api_response.status_code,
                    response=api_response,
                    retry_after=retry_after,
                )

            if api_response.is_error:
                self._handle_error_response(api_response.status_code, api_response)

            return api_response

        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.retry_delay,
                min=self.retry_delay,
                max=self.retry_delay * 8
            ),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError, RetryableAPIError)),
            before_sleep=before_sleep_log(logger, logging.WARNING)
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await _send_once()
        except httpx.TimeoutException as exc:
            raise APIError(f"Request timeout after {self.timeout}s") from exc
        except httpx.NetworkError as exc:
            raise APIError(f"Network error: {exc}") from exc
        except RetryableAPIError as exc:
            if exc.response:
                self._handle_error_response(exc.status_code or exc.response.status_code, exc.response)
            raise APIError(exc.message) from exc
        except APIError:
            raise
        except httpx.HTTPError as exc:
            raise APIError(f"HTTP error: {exc}") from exc

    async def get(self, endpoint: str, **kwargs) -> APIResponse:
        return await self._request(HTTPMethod.GET, endpoint, **kwargs)

    async def post(self, endpoint: str, **kwargs) -> APIResponse:
        return await self._request(HTTPMethod.POST, endpoint, **kwargs)

    async def delete(self, endpoint: str, **kwargs) -> APIResponse:
        return await self._request(HTTPMethod.DELETE, endpoint, **kwargs)
