# File: tests/conftest.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from domain_scout.config import DiscoveryOptions
from domain_scout.crawler.fetcher import Fetcher
from domain_scout.crawler.models import FetchResult
from domain_scout.crawler.scheduler import CrawlScheduler
from domain_scout.engine import DiscoveryOrchestrator
from domain_scout.utils import normalize_url

FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
FIXED_TODAY = date(2024, 6, 15)


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


@dataclass
class Route:
    status: Optional[int] = 200
    body: str = ""
    content_type: str = "text/html; charset=utf-8"
    final_url: Optional[str] = None
    head_status: Optional[int] = None


class FakeTransport:
    """In-memory transport: canonical URL -> Route; unknown URLs answer 404."""

    def __init__(self, routes: Optional[Dict[str, Route]] = None, *, unreachable: bool = False) -> None:
        self.routes: Dict[str, Route] = {}
        self.unreachable = unreachable
        self.calls: List[Tuple[str, str]] = []
        for url, route in (routes or {}).items():
            self.add(url, route)

    def add(self, url: str, route: Optional[Route] = None, **kwargs) -> None:
        self.routes[normalize_url(url) or url] = route or Route(**kwargs)

    def page(self, url: str, html: str, **kwargs) -> None:
        self.add(url, Route(body=html, **kwargs))

    def count(self, method: str, url: str) -> int:
        key = normalize_url(url) or url
        return sum(1 for m, u in self.calls if m == method and (normalize_url(u) or u) == key)

    async def request(self, method: str, url: str, *, timeout: float, max_redirects: int) -> FetchResult:
        self.calls.append((method, url))
        await asyncio.sleep(0)
        if self.unreachable:
            return FetchResult(url=url, status=None, error="Connection refused", requested_url=url)
        route = self.routes.get(normalize_url(url) or url)
        if route is None:
            return FetchResult(
                url=url, status=404, content=None if method == "HEAD" else "not found",
                content_type="text/html", requested_url=url,
            )
        if route.status is None:
            return FetchResult(url=url, status=None, error="timeout", requested_url=url, timed_out=True)
        final = route.final_url if route.final_url and max_redirects > 0 else url
        if final != url:
            target = self.routes.get(normalize_url(final) or final)
            if target is not None:
                route = target
        status = route.head_status if method == "HEAD" and route.head_status else route.status
        return FetchResult(
            url=final,
            status=status,
            content=None if method == "HEAD" else route.body,
            content_type=route.content_type,
            requested_url=url,
        )


class VirtualClock:
    """Monotonic clock advanced only by the injected sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def html_page(*links: str, text: str = "", nav: Tuple[str, ...] = ()) -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    nav_html = "".join(f'<a href="{href}">{href}</a>' for href in nav)
    return (
        "<html><head><title>t</title></head><body>"
        f"<nav>{nav_html}</nav><main><p>{text}</p>{anchors}</main>"
        "</body></html>"
    )


@pytest.fixture()
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def options() -> DiscoveryOptions:
    """Fast options: no pacing, no retries, generators kept small."""
    return DiscoveryOptions(
        rate_limit_delay_ms=0,
        retry_times=0,
        max_depth=2,
        extract_navigation=False,
        max_generated_paths=0,
        max_archive_candidates=0,
    )


@pytest.fixture()
def make_fetcher(clock):
    def _make(transport, *, delay_ms: int = 0, retry_times: int = 0) -> Fetcher:
        scheduler = CrawlScheduler(delay_ms, clock=clock, sleep=clock.sleep)
        return Fetcher(transport, scheduler, retry_times=retry_times)

    return _make


@pytest.fixture()
def make_orchestrator(clock):
    def _make(transport, options: DiscoveryOptions, domain: str = "example.org", **kwargs) -> DiscoveryOrchestrator:
        return DiscoveryOrchestrator(
            domain,
            options,
            transport=transport,
            clock=clock,
            sleep=clock.sleep,
            now=lambda: FIXED_NOW,
            today=lambda: FIXED_TODAY,
            **kwargs,
        )

    return _make


@pytest.fixture()
def wordlists_files(tmp_path) -> Dict[str, Path]:
    """
    Create temporary wordlist files for tests.
    Returns dict with names to file paths.
    """
    paths = tmp_path / "paths.txt"
    paths.write_text("# sections\n/diabetes-care\nliving-with-diabetes\n", encoding="utf-8")
    return {"paths": paths}
