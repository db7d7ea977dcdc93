# File: domain_scout/engine.py
"""domain_scout.engine: оркестрация прогона обнаружения URL и агрегация результата."""

from __future__ import annotations

import asyncio
import time
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple

from domain_scout.aggregator import DiscoveryRunResult, aggregate_results
from domain_scout.config import DiscoveryOptions
from domain_scout.crawler.crawler import LinkFollowingStrategy
from domain_scout.crawler.fetcher import AiohttpTransport, Fetcher, Transport
from domain_scout.crawler.link_extractor import LinkExtractor
from domain_scout.crawler.models import DiscoveredURL, DiscoveryMethod, RobotsPolicy
from domain_scout.crawler.robots import RobotsPolicyResolver
from domain_scout.crawler.scheduler import Clock, CrawlScheduler, Sleep
from domain_scout.crawler.sitemap import SitemapDiscoverer
from domain_scout.dedup import (
    Candidate,
    CanonicalResolver,
    ContentFingerprinter,
    DeduplicationPipeline,
    DiscoveryRunState,
)
from domain_scout.generators import ArchivePatternGenerator, PathPatternGenerator
from domain_scout.logger import get_logger
from domain_scout.utils import chunked, normalize_domain, remove_duplicates

__all__ = ["DiscoveryOrchestrator", "discover_domain_urls", "run_discovery"]

logger = get_logger("engine")


class _RunContext:
    """Компоненты одного прогона, созданные поверх общего транспорта."""

    def __init__(
        self,
        options: DiscoveryOptions,
        transport: Transport,
        clock: Clock,
        sleep: Sleep,
    ) -> None:
        self.state = DiscoveryRunState(options.max_urls)
        self.scheduler = CrawlScheduler(
            options.rate_limit_delay_ms,
            conservative_delay_ms=options.conservative_delay_ms,
            high_volume_threshold=options.high_volume_threshold,
            volume_source=lambda: len(self.state),
            clock=clock,
            sleep=sleep,
        )
        self.fetcher = Fetcher(
            transport,
            self.scheduler,
            timeout=options.timeout,
            head_timeout=options.head_timeout,
            max_redirects=options.max_redirects,
            retry_times=options.retry_times,
        )
        self.robots = RobotsPolicyResolver(
            self.fetcher, options.user_agent, options.rate_limit_delay_ms
        )
        self.extractor = LinkExtractor(self.fetcher)
        self.pipeline: Optional[DeduplicationPipeline] = None


class DiscoveryOrchestrator:
    """Запускает стратегии по порядку и собирает DiscoveryRunResult.

    Порядок: ручные URL, sitemap, link-following, path-generation (с проходом по меню
    навигации), archive-discovery. Все кандидаты проходят общий
    DeduplicationPipeline; бюджет проверяется между пакетами.
    """

    def __init__(
        self,
        domain: str,
        options: Optional[DiscoveryOptions] = None,
        *,
        transport: Optional[Transport] = None,
        manual_urls: Sequence[str] = (),
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None,
        now: Optional[Callable[[], datetime]] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        """Инициализирует оркестратор доменом, параметрами и (опционально) тестовыми зависимостями."""
        self.domain = normalize_domain(domain)
        self.options = options or DiscoveryOptions()
        self.transport = transport
        self.manual_urls = list(manual_urls)
        self.clock: Clock = clock or time.monotonic
        self.sleep: Sleep = sleep or asyncio.sleep
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.today = today

    async def run(self) -> DiscoveryRunResult:
        """Выполняет один прогон; сетевые сбои не выбрасываются наружу."""
        if self.transport is not None:
            return await self._run(self.transport)
        async with AiohttpTransport(self.options.user_agent) as transport:
            return await self._run(transport)

    async def _run(self, transport: Transport) -> DiscoveryRunResult:
        opts = self.options
        ctx = _RunContext(opts, transport, self.clock, self.sleep)
        started = self.clock()
        logger.info("Starting discovery for %s (max_urls=%d)", self.domain, opts.max_urls)

        policy = await ctx.robots.resolve(self.domain)
        if opts.respect_robots_txt:
            if not policy.allowed:
                logger.warning("robots.txt disallows crawling %s, stopping", self.domain)
                ctx.state.stop("robots-disallow")
                return self._finish(ctx, started)
            if policy.has_crawl_delay:
                ctx.scheduler.apply_crawl_delay(policy.crawl_delay_ms)

        if not await self._reachable(ctx):
            logger.error("Domain %s is unreachable", self.domain)
            ctx.state.stop("unreachable")
            return self._finish(ctx, started)

        ctx.pipeline = self._build_pipeline(ctx, policy)
        strategies: List[Tuple[str, Callable[[_RunContext], Awaitable[int]]]] = [
            (DiscoveryMethod.MANUAL.value, self._manual),
            (DiscoveryMethod.SITEMAP.value, self._sitemap),
            (DiscoveryMethod.LINK_FOLLOWING.value, self._link_following),
            (DiscoveryMethod.PATH_GENERATION.value, self._path_generation),
            (DiscoveryMethod.ARCHIVE_DISCOVERY.value, self._archive_discovery),
        ]
        for name, strategy in strategies:
            if ctx.state.stopped:
                logger.info("URL budget reached, skipping %s", name)
                continue
            try:
                added = await strategy(ctx)
            except Exception:
                logger.exception("Strategy %s failed", name)
                continue
            logger.info("%s: %d URLs accepted (total %d)", name, added, len(ctx.state))

        return self._finish(ctx, started)

    # ------------------------------------------------------------------ #
    # setup                                                              #
    # ------------------------------------------------------------------ #

    async def _reachable(self, ctx: _RunContext) -> bool:
        home = f"https://{self.domain}/"
        return (await ctx.fetcher.head(home)).reachable

    def _build_pipeline(self, ctx: _RunContext, policy: RobotsPolicy) -> DeduplicationPipeline:
        opts = self.options
        fingerprinter = (
            ContentFingerprinter(ctx.fetcher, opts.min_fingerprint_chars)
            if opts.fingerprint_content
            else None
        )
        return DeduplicationPipeline(
            self.domain,
            opts,
            ctx.state,
            CanonicalResolver(ctx.fetcher, opts.max_redirects),
            fingerprinter,
            policy=policy if opts.respect_robots_txt else None,
            now=self.now,
        )

    # ------------------------------------------------------------------ #
    # strategies                                                         #
    # ------------------------------------------------------------------ #

    async def _admit_all(
        self, ctx: _RunContext, urls: Iterable[str], method: DiscoveryMethod
    ) -> List[DiscoveredURL]:
        assert ctx.pipeline is not None
        accepted: List[DiscoveredURL] = []
        candidates = [Candidate(url, method) for url in urls]
        for batch in chunked(candidates, self.options.batch_size):
            if ctx.state.stopped:
                break
            accepted.extend(await ctx.pipeline.admit_batch(batch))
        return accepted

    async def _manual(self, ctx: _RunContext) -> int:
        if not self.manual_urls:
            return 0
        return len(await self._admit_all(ctx, self.manual_urls, DiscoveryMethod.MANUAL))

    async def _sitemap(self, ctx: _RunContext) -> int:
        discoverer = SitemapDiscoverer(
            ctx.fetcher, ctx.robots, ctx.state, max_depth=self.options.max_sitemap_depth
        )
        urls = await discoverer.discover(self.domain)
        return len(await self._admit_all(ctx, urls, DiscoveryMethod.SITEMAP))

    async def _link_following(self, ctx: _RunContext) -> int:
        assert ctx.pipeline is not None
        strategy = LinkFollowingStrategy(self.domain, self.options, ctx.pipeline, ctx.extractor)
        return len(await strategy.run())

    async def _path_generation(self, ctx: _RunContext) -> int:
        urls: List[str] = []
        if self.options.extract_navigation:
            urls.extend(await self._navigation_links(ctx))
        urls.extend(PathPatternGenerator.from_options(self.options).generate(self.domain))
        return len(
            await self._admit_all(ctx, remove_duplicates(urls), DiscoveryMethod.PATH_GENERATION)
        )

    async def _navigation_links(self, ctx: _RunContext) -> List[str]:
        seeds = remove_duplicates([f"https://{self.domain}{p}" for p in self.options.seed_paths])
        links: List[str] = []
        for batch in chunked(seeds, self.options.batch_size):
            results = await asyncio.gather(
                *(ctx.extractor.extract_links(url, navigation_only=True) for url in batch)
            )
            for found in results:
                links.extend(found)
        logger.info("Navigation menus yielded %d links", len(links))
        return links

    async def _archive_discovery(self, ctx: _RunContext) -> int:
        generator = ArchivePatternGenerator.from_options(self.options, today=self.today)
        urls = generator.generate(self.domain)
        return len(await self._admit_all(ctx, urls, DiscoveryMethod.ARCHIVE_DISCOVERY))

    # ------------------------------------------------------------------ #
    # result                                                             #
    # ------------------------------------------------------------------ #

    def _finish(self, ctx: _RunContext, started: float) -> DiscoveryRunResult:
        elapsed_ms = max(0, int(round((self.clock() - started) * 1000)))
        result = aggregate_results(
            ctx.state,
            processing_time_ms=elapsed_ms,
            expected_total=self.options.expected_total_urls,
            fetch_errors=ctx.fetcher.errors,
            requests=ctx.fetcher.requests,
        )
        logger.info(
            "Discovery for %s finished: %d URLs, coverage %.1f%%, reason=%s",
            self.domain, result.total_urls, result.coverage_estimate, result.terminated_reason,
        )
        return result


async def discover_domain_urls(
    domain: str,
    options: Optional[DiscoveryOptions] = None,
    *,
    transport: Optional[Transport] = None,
    manual_urls: Sequence[str] = (),
    **overrides: Any,
) -> DiscoveryRunResult:
    """Асинхронная точка входа: обнаруживает URL домена с параметрами *options*.

    Именованные *overrides* переопределяют отдельные поля DiscoveryOptions.
    """
    opts = (options or DiscoveryOptions()).with_overrides(**overrides)
    orchestrator = DiscoveryOrchestrator(
        domain, opts, transport=transport, manual_urls=manual_urls
    )
    return await orchestrator.run()


def run_discovery(
    domain: str,
    options: Optional[DiscoveryOptions] = None,
    *,
    scan_timeout: Optional[float] = None,
    manual_urls: Sequence[str] = (),
) -> DiscoveryRunResult:
    """Синхронная обёртка для CLI: запускает прогон с общим таймаутом."""
    coro = discover_domain_urls(domain, options, manual_urls=manual_urls)
    try:
        return asyncio.run(asyncio.wait_for(coro, timeout=scan_timeout))
    except asyncio.TimeoutError:
        logger.error("Discovery did not finish within %s seconds", scan_timeout)
        raise
