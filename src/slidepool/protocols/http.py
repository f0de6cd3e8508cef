# src/slidepool/protocols/http.py
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import aiohttp
from loguru import logger

from ..core.scheduler import FailurePolicy, SettleCallback, WindowScheduler
from ..utils.config import DEFAULT_LIMIT, HTTP_TIMEOUT_SECONDS


@dataclass
class FetchResult:
    """Response of a single GET request."""
    url: str
    status: int
    content_type: str
    body: bytes
    elapsed: float

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary (body reported by size)."""
        return {
            'url': self.url,
            'status': self.status,
            'content_type': self.content_type,
            'size': len(self.body),
            'elapsed': round(self.elapsed, 3),
        }


class FetchError(Exception):
    """A request failed at the transport level or returned an error status."""

    def __init__(self, url: str, message: str, status: int | None = None):
        super().__init__(f"{url}: {message}")
        self.url = url
        self.status = status


class HttpFetcher:
    """
    aiohttp transport that plugs into the scheduler as an operation.

    Use as an async context manager so the session is shared by every request
    of a run and closed afterwards.
    """

    TIMEOUT = aiohttp.ClientTimeout(total=HTTP_TIMEOUT_SECONDS)

    def __init__(self, timeout: float | None = None, headers: dict[str, str] | None = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout) if timeout is not None else HttpFetcher.TIMEOUT
        self.headers = headers or {}
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(timeout=self.timeout, headers=self.headers)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session is not None:
            await self.session.close()
            self.session = None

    async def fetch(self, url: str) -> FetchResult:
        """
        GET a URL and read the whole body.

        Args:
            url: Absolute URL to request

        Returns:
            FetchResult for a 2xx/3xx response

        Raises:
            FetchError: Connection failure, timeout or status >= 400
        """
        if self.session is None:
            raise RuntimeError("HttpFetcher must be used as an async context manager")

        started = time.perf_counter()
        try:
            async with self.session.get(url) as response:
                body = await response.read()
                if response.status >= 400:
                    logger.debug(f"Error response from {url}: {response.status}")
                    raise FetchError(url, f"HTTP {response.status} {response.reason}", status=response.status)
                elapsed = time.perf_counter() - started
                logger.debug(f"Fetched {url} ({response.status}, {len(body)} bytes) in {elapsed:.3f}s")
                return FetchResult(
                    url=url,
                    status=response.status,
                    content_type=response.content_type,
                    body=body,
                    elapsed=elapsed
                )
        except aiohttp.ClientError as e:
            raise FetchError(url, f"request failed: {e}") from e
        except TimeoutError as e:
            raise FetchError(url, f"timed out after {self.timeout.total}s") from e

    async def fetch_all(
        self,
        urls: Iterable[str],
        limit: int = DEFAULT_LIMIT,
        policy: FailurePolicy | str = FailurePolicy.FAST_FAIL,
        cancel_pending: bool = False,
        on_settle: SettleCallback | None = None
    ) -> list:
        """Fetch every URL with at most `limit` requests in flight, results in input order."""
        urls = list(urls)
        logger.info(f"Fetching {len(urls)} URLs with limit {limit}")
        scheduler = WindowScheduler(limit, policy=policy, cancel_pending=cancel_pending)
        return await scheduler.run(urls, self.fetch, on_settle=on_settle)


async def fetch_urls(
    urls: Iterable[str],
    limit: int = DEFAULT_LIMIT,
    policy: FailurePolicy | str = FailurePolicy.FAST_FAIL,
    timeout: float | None = None,
    cancel_pending: bool = False,
    on_settle: SettleCallback | None = None
) -> list:
    """Open a fetcher, fetch every URL and close it again."""
    async with HttpFetcher(timeout=timeout) as fetcher:
        return await fetcher.fetch_all(
            urls, limit, policy=policy, cancel_pending=cancel_pending, on_settle=on_settle
        )
