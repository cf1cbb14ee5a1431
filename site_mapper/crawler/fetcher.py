# site_mapper/crawler/fetcher.py
"""
Fetcher module: HTTP GET with a per-request timeout, failures reported as values.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_mapper.crawler.models import FailureReason, FetchResult

__all__ = ("Fetcher", "HttpFetcher")


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchResult: ...


class HttpFetcher:
    """aiohttp-backed :class:`Fetcher`. Redirects are followed by aiohttp."""

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = "SiteMapperBot/1.0",
        session: Optional[ClientSession] = None,
    ) -> None:
        self.timeout = ClientTimeout(total=timeout)
        self.user_agent = user_agent
        self.session = session
        self._owns_session = session is None
        self.logger = logging.getLogger("SiteMapper")

    async def __aenter__(self) -> HttpFetcher:
        if self.session is None:
            self.session = ClientSession(
                headers={"User-Agent": self.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def fetch(self, url: str) -> FetchResult:
        """
        GET ``url``.

        2xx -> success with the raw body; timeouts, connection errors and any
        other status -> failure result.  Never raises for network problems.
        """
        if not self.session:
            raise RuntimeError("Session not initialized")
        try:
            async with self.session.get(url, timeout=self.timeout, allow_redirects=True) as resp:
                if not 200 <= resp.status < 300:
                    return FetchResult.failure(
                        url, FailureReason.HTTP_STATUS, status_code=resp.status
                    )
                body = await resp.read()
                return FetchResult.success(
                    url,
                    body,
                    content_type=resp.headers.get("Content-Type"),
                    encoding=resp.charset,
                    status_code=resp.status,
                )
        except asyncio.TimeoutError:
            return FetchResult.failure(url, FailureReason.TIMEOUT)
        except ClientError as exc:
            return FetchResult.failure(url, FailureReason.CONNECTION, detail=str(exc))
