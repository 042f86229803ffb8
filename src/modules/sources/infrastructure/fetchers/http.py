"""HTTP(S) 订阅抓取器实现。

固定约束：
- 响应体上限 10 MiB，超出立即中止正在进行的请求
- 30 秒超时，同时覆盖连接与整体传输
"""

import asyncio
import time

import httpx
from loguru import logger

from src.core.config import settings
from src.modules.sources.domain.exceptions import FetchError


class HttpSubscriptionFetcher:
    """订阅抓取器。返回完整响应文本，失败时抛出 FetchError。"""

    ACCEPT = "application/vnd.apple.mpegurl, audio/x-mpegurl, text/plain, */*"

    def __init__(
        self,
        *,
        timeout_sec: float | None = None,
        max_bytes: int | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_sec = timeout_sec or settings.FETCH_TIMEOUT_SEC
        self.max_bytes = max_bytes or settings.FETCH_MAX_BYTES
        self.user_agent = user_agent or settings.FETCHER_USER_AGENT
        self.transport = transport

    async def fetch(self, url: str) -> str:
        """执行抓取。"""
        if not url.startswith(("http://", "https://")):
            raise FetchError(url, "URL must be a valid HTTP(S) URL")

        start_time = time.time()
        try:
            async with asyncio.timeout(self.timeout_sec):
                payload, encoding = await self._download(url)
        except FetchError:
            raise
        except (TimeoutError, httpx.TimeoutException) as e:
            raise FetchError(url, f"Timeout after {self.timeout_sec:g}s") from e
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"Error: {e}") from e

        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"Fetched {url}: {len(payload)} bytes in {duration_ms}ms")
        return self._decode(payload, encoding)

    async def _download(self, url: str) -> tuple[bytes, str | None]:
        async with httpx.AsyncClient(
            timeout=self.timeout_sec,
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            async with client.stream(
                "GET",
                url,
                headers={"User-Agent": self.user_agent, "Accept": self.ACCEPT},
            ) as response:
                response.raise_for_status()

                declared = response.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > self.max_bytes:
                    raise FetchError(url, self._size_limit_message())

                buffer = bytearray()
                async for chunk in response.aiter_bytes():
                    buffer.extend(chunk)
                    if len(buffer) > self.max_bytes:
                        raise FetchError(url, self._size_limit_message())

                return bytes(buffer), response.charset_encoding

    def _size_limit_message(self) -> str:
        return f"Response exceeds size limit of {self.max_bytes} bytes"

    @staticmethod
    def _decode(payload: bytes, encoding: str | None) -> str:
        try:
            return payload.decode(encoding or "utf-8", errors="replace")
        except LookupError:
            return payload.decode("utf-8", errors="replace")
