"""
HTTP 客户端

所有仓库共用的 JSON GET 请求封装：统一前缀、请求头、超时和状态码到异常的映射。
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from shulkers.exceptions import (
    APIError,
    APIRateLimitError,
    APIServerError,
    NotFoundError,
    UpstreamUnavailableError,
)

DEFAULT_TIMEOUT = 30.0


class JSONClient:
    """基于 aiohttp 的 JSON API 客户端"""

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owned_session = True
        return self._session

    def url(self, path: str) -> str:
        """拼接完整 URL，绝对地址原样返回"""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        发送 GET 请求并解析 JSON

        Raises:
            NotFoundError: 404
            APIRateLimitError: 429
            APIServerError: 5xx
            APIError: 其他非 2xx 状态码
            UpstreamUnavailableError: 网络错误、超时或响应无法解析
        """
        url = self.url(path)
        logger.debug(f"[HTTP] GET {url} {params or ''}")
        try:
            async with self.session.get(
                url, params=params, headers=self.headers, timeout=self.timeout
            ) as response:
                if response.status == 404:
                    raise NotFoundError(f"资源不存在: {url}", response=response)
                if response.status == 429:
                    raise APIRateLimitError(f"请求过于频繁: {url}", response=response)
                if response.status >= 500:
                    raise APIServerError(
                        f"服务器错误 (状态码: {response.status})", response=response
                    )
                if not 200 <= response.status < 300:
                    raise APIError(
                        f"API 请求失败 (状态码: {response.status})", response=response
                    )
                return await response.json(content_type=None)
        except APIError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise UpstreamUnavailableError(
                f"无法访问 {url}: {e.__class__.__name__}",
                context={"url": url, "error": str(e)},
            ) from e

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
