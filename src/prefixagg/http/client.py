"""
HTTP client for downloading prefix lists.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

import httpx

from prefixagg.config import DEFAULT_USER_AGENT
from prefixagg.errors import FetchConnectionError, FetchError, FetchStatusError

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = ("http", "https")


@dataclass
class FetchResult:
    """Body of one downloaded source."""
    source: str
    text: str
    status_code: int
    elapsed_ms: float


def validate_source(source: str) -> str:
    """Check that a source is an absolute http(s) URL. Returns it unchanged."""
    try:
        url = httpx.URL(source)
    except httpx.InvalidURL as e:
        raise ValueError(f"invalid URL {source!r}: {e}") from e
    if url.scheme not in SUPPORTED_SCHEMES:
        raise ValueError(f"unsupported URL scheme in {source!r} (expected http or https)")
    if not url.host:
        raise ValueError(f"URL {source!r} has no host")
    return source


class SourceFetcher:
    """Fetches source bodies concurrently with connection pooling.

    Usage:
        async with SourceFetcher() as fetcher:
            results = await fetcher.fetch_all_async(urls)

    Any failure aborts the whole batch: a partial list would silently
    under-represent the aggregate.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        connect_timeout: float = 10.0,
        concurrency: int = 8,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.concurrency = max(1, concurrency)
        self.user_agent = user_agent
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
                limits=httpx.Limits(max_keepalive_connections=self.concurrency, max_connections=self.concurrency * 2),
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "SourceFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch_async(self, source: str) -> FetchResult:
        """Download one source.

        Raises:
            FetchConnectionError: no response was received
            FetchStatusError: the response status was not 2xx
        """
        client = await self._get_client()
        start_time = time.time()
        try:
            resp = await client.get(source)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise FetchStatusError(source, f"HTTP {status} {e.response.reason_phrase}", status_code=status) from e
        except httpx.RequestError as e:
            raise FetchConnectionError(source, f"{type(e).__name__}: {e}") from e
        except httpx.InvalidURL as e:
            raise FetchError(source, f"invalid URL: {e}") from e

        result = FetchResult(
            source=source,
            text=resp.text,
            status_code=resp.status_code,
            elapsed_ms=(time.time() - start_time) * 1000,
        )
        logger.info(f"Fetched {source}: HTTP {result.status_code}, {len(result.text)} chars in {result.elapsed_ms:.0f} ms")
        return result

    async def fetch_all_async(self, sources: list[str]) -> list[FetchResult]:
        """Download all sources in parallel. Results keep the order of ``sources``.

        The first failure cancels the outstanding downloads and is re-raised.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(source: str) -> FetchResult:
            async with semaphore:
                return await self.fetch_async(source)

        tasks = [asyncio.ensure_future(bounded(source)) for source in sources]
        try:
            return list(await asyncio.gather(*tasks))
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run_all(self, sources: list[str]) -> list[FetchResult]:
        try:
            return await self.fetch_all_async(sources)
        finally:
            await self.close()

    def fetch(self, source: str) -> str:
        """Synchronous fetch of one source body."""
        return self.fetch_all([source])[0]

    def fetch_all(self, sources: list[str]) -> list[str]:
        """Synchronous fetch of all source bodies, in order."""
        return [result.text for result in asyncio.run(self._run_all(sources))]
