"""Shared outbound HTTP client for api_call steps.

One keep-alive pool per process; closed in the app lifespan.
"""

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "prompt-studio/0.1"
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)
DEFAULT_LIMITS = httpx.Limits(max_keepalive_connections=20, max_connections=50, keepalive_expiry=30.0)


class HTTPPool:
    """Process-wide singleton around one ``httpx.AsyncClient``.

    The client is created lazily and recreated if something closed it.
    """

    _instance: "HTTPPool | None" = None
    _lock: asyncio.Lock | None = None

    def __init__(self) -> None:
        self._client: httpx.AsyncClient | None = None

    @classmethod
    async def get_instance(cls) -> "HTTPPool":
        """Get singleton instance (async-safe)."""
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        async with cls._lock:
            if cls._instance is None:
                cls._instance = HTTPPool()
            return cls._instance

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=DEFAULT_TIMEOUT,
                limits=DEFAULT_LIMITS,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            )
        return self._client

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        content: str | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Issue one request. ``timeout`` overrides the pool default for this call only."""
        client = await self.get_client()
        request_kwargs: dict = {"headers": headers}
        if content is not None:
            request_kwargs["content"] = content
        if timeout:
            request_kwargs["timeout"] = timeout
        logger.debug("HTTP %s %s", method, url)
        return await client.request(method, url, **request_kwargs)

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    @classmethod
    async def reset(cls) -> None:
        """Close and drop the singleton (shutdown, tests)."""
        if cls._instance:
            await cls._instance.close()
            cls._instance = None


async def fetch_url(
    url: str,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    content: str | None = None,
    timeout: float | None = None,
) -> httpx.Response:
    """Send a request through the shared pool. The method is upper-cased."""
    pool = await HTTPPool.get_instance()
    return await pool.send(method.upper(), url, headers=headers, content=content, timeout=timeout)
