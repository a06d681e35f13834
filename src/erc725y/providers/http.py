"""HTTP(S) content fetcher backed by aiohttp."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import aiohttp

from erc725y.errors import ContentNotFoundError, ExternalFetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AiohttpContentFetcher:
    """Fetch external JSON or raw bytes over HTTP.

    Owns its ClientSession unless one is passed in. Call close() (or use
    ``async with``) when done.
    """

    def __init__(self, timeout: float = 30.0, session: aiohttp.ClientSession | None = None) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _get(self, url: str, read: Callable[[aiohttp.ClientResponse], Awaitable[T]]) -> T:
        session = self._get_session()
        try:
            async with session.get(url) as response:
                if response.status == 404:
                    raise ContentNotFoundError(url, "404 Not Found")
                if response.status >= 400:
                    raise ExternalFetchError(url, f"HTTP {response.status}")
                return await read(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("GET request to %s failed: %s", url, e)
            raise ExternalFetchError(url, str(e) or type(e).__name__) from e

    async def fetch_bytes(self, url: str) -> bytes:
        return await self._get(url, lambda response: response.read())

    async def fetch_json(self, url: str) -> Any:
        async def read_json(response: aiohttp.ClientResponse) -> Any:
            try:
                return await response.json(content_type=None)
            except ValueError as e:
                raise ExternalFetchError(url, f"invalid JSON: {e}") from e

        return await self._get(url, read_json)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> AiohttpContentFetcher:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
