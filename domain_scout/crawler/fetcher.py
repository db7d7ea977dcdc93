# domain_scout/crawler/fetcher.py
"""
Fetcher module: HTTP requests with the shared rate limit, retry/backoff, redirects and timeout.

Two layers:

* a *transport* performs exactly one exchange and never raises for network
  problems (:class:`AiohttpTransport` in production, fakes in tests);
* :class:`Fetcher` is the fetch-with-policy capability injected into every
  discovery component: it waits for a scheduler slot before each attempt and
  retries 429/5xx responses and connection failures with exponential backoff.
"""
from __future__ import annotations

import asyncio
import codecs
import gzip
import zlib
from typing import Optional, Protocol, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout, InvalidURL, TooManyRedirects

from domain_scout.crawler.models import FetchResult
from domain_scout.crawler.scheduler import CrawlScheduler
from domain_scout.logger import get_logger

__all__ = ("Transport", "AiohttpTransport", "Fetcher")

_GZIP_MAGIC = b"\x1f\x8b"


class Transport(Protocol):
    async def request(
        self, method: str, url: str, *, timeout: float, max_redirects: int
    ) -> FetchResult: ...


class AiohttpTransport:
    """Single HTTP exchange over a shared :class:`aiohttp.ClientSession`."""

    def __init__(self, user_agent: str, session: Optional[ClientSession] = None) -> None:
        self.user_agent = user_agent
        self.session = session
        self._owns_session = session is None
        self.logger = get_logger("transport")

    async def __aenter__(self) -> AiohttpTransport:
        if self.session is None:
            self.session = ClientSession(
                headers={"User-Agent": self.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def request(
        self, method: str, url: str, *, timeout: float, max_redirects: int
    ) -> FetchResult:
        if not self.session:
            raise RuntimeError("Session not initialized")
        try:
            async with self.session.request(
                method,
                url,
                timeout=ClientTimeout(total=timeout),
                allow_redirects=max_redirects > 0,
                max_redirects=max(1, max_redirects),
            ) as resp:
                ctype = resp.headers.get("Content-Type", "")
                content: Optional[str] = None
                error: Optional[str] = None
                if method.upper() != "HEAD":
                    body = await resp.read()
                    try:
                        content = self._decode(body, resp.charset)
                    except (gzip.BadGzipFile, EOFError, zlib.error) as exc:
                        # the server did answer: keep the status, drop the body
                        self.logger.debug("%s %s: corrupt body: %s", method, url, exc)
                        error = f"corrupt body: {exc}"
                return FetchResult(
                    url=str(resp.url),
                    status=resp.status,
                    content=content,
                    content_type=ctype,
                    error=error,
                    requested_url=url,
                )
        except asyncio.TimeoutError:
            self.logger.debug("%s %s timed out after %.1f s", method, url, timeout)
            return FetchResult(url=url, status=None, error="timeout", requested_url=url, timed_out=True)
        except (TooManyRedirects, InvalidURL) as exc:
            self.logger.debug("%s %s failed permanently: %r", method, url, exc)
            return FetchResult(
                url=url, status=None, error=type(exc).__name__, requested_url=url, retryable=False
            )
        except (ClientError, OSError, ValueError) as exc:
            self.logger.debug("%s %s failed: %s", method, url, exc)
            return FetchResult(url=url, status=None, error=str(exc) or type(exc).__name__, requested_url=url)

    @staticmethod
    def _decode(body: bytes, charset: Optional[str]) -> str:
        if body.startswith(_GZIP_MAGIC):
            body = gzip.decompress(body)
        encoding = "utf-8"
        if charset:
            try:
                encoding = codecs.lookup(charset).name
            except LookupError:
                pass  # unknown charset: utf-8 with replacement
        return body.decode(encoding, errors="replace")


class Fetcher:
    """Handles HTTP fetching with the shared scheduler, retries/backoff, and timeouts."""

    RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)

    def __init__(
        self,
        transport: Transport,
        scheduler: CrawlScheduler,
        *,
        timeout: float = 10.0,
        head_timeout: float = 5.0,
        max_redirects: int = 5,
        retry_times: int = 2,
    ) -> None:
        self.transport = transport
        self.scheduler = scheduler
        self.timeout = timeout
        self.head_timeout = head_timeout
        self.max_redirects = max_redirects
        self.retry_times = retry_times
        self.requests = 0
        self.errors = 0
        self.logger = get_logger("fetcher")

    async def get(
        self, url: str, *, timeout: Optional[float] = None, max_redirects: Optional[int] = None
    ) -> FetchResult:
        return await self._request(
            "GET",
            url,
            self.timeout if timeout is None else timeout,
            self.max_redirects if max_redirects is None else max_redirects,
        )

    async def head(
        self, url: str, *, timeout: Optional[float] = None, max_redirects: Optional[int] = None
    ) -> FetchResult:
        return await self._request(
            "HEAD",
            url,
            self.head_timeout if timeout is None else timeout,
            self.max_redirects if max_redirects is None else max_redirects,
        )

    async def _request(self, method: str, url: str, timeout: float, max_redirects: int) -> FetchResult:
        attempts = 0
        while True:
            await self.scheduler.await_slot()
            self.requests += 1
            result = await self.transport.request(
                method, url, timeout=timeout, max_redirects=max_redirects
            )
            retryable = (
                result.status in self.RETRY_STATUS
                or (result.status is None and result.retryable and not result.timed_out)
            )
            if not retryable or attempts >= self.retry_times:
                if result.status is None:
                    self.errors += 1
                return result
            attempts += 1
            # exponential backoff, cap at 60s
            backoff = min(2**attempts, 60)
            self.logger.debug(
                "Retry %d/%d for %s %s after %.0f s (%s)",
                attempts, self.retry_times, method, url, backoff, result.error or result.status,
            )
            await self.scheduler.backoff(backoff)
