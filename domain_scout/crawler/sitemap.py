# domain_scout/crawler/sitemap.py
"""
Sitemap discovery: robots-declared sitemaps, conventional locations,
recursive sitemap indexes and paginated sitemap variants.
"""
from __future__ import annotations

from typing import Dict, List, Sequence
from urllib.parse import urljoin

from domain_scout.crawler.fetcher import Fetcher
from domain_scout.crawler.robots import RobotsPolicyResolver
from domain_scout.dedup import DiscoveryRunState
from domain_scout.logger import get_logger
from domain_scout.parser.sitemap_parser import find_paginated_sitemaps, parse_sitemap
from domain_scout.utils import is_in_domain, normalize_url

__all__ = ("COMMON_SITEMAP_LOCATIONS", "SitemapDiscoverer")

COMMON_SITEMAP_LOCATIONS: Sequence[str] = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap/sitemap.xml",
    "/sitemaps/sitemap.xml",
    "/wp-sitemap.xml",
    "/sitemap-index.xml",
    "/sitemap1.xml",
    "/sitemap-posts.xml",
    "/sitemap-pages.xml",
    "/sitemap-categories.xml",
    "/news-sitemap.xml",
)


class SitemapDiscoverer:
    """Collects canonical page URLs from every sitemap reachable for a domain."""

    def __init__(
        self,
        fetcher: Fetcher,
        robots: RobotsPolicyResolver,
        state: DiscoveryRunState,
        *,
        max_depth: int = 3,
    ) -> None:
        self.fetcher = fetcher
        self.robots = robots
        self.state = state
        self.max_depth = max_depth
        self.logger = get_logger("sitemap")

    async def discover(self, domain: str) -> List[str]:
        found: Dict[str, None] = {}

        policy = await self.robots.resolve(domain)
        for sitemap_url in policy.sitemap_urls:
            self.logger.info("Sitemap declared in robots.txt: %s", sitemap_url)
            await self._process(sitemap_url, domain, found, depth=0)

        base = f"https://{domain}"
        for location in COMMON_SITEMAP_LOCATIONS:
            sitemap_url = base + location
            if (normalize_url(sitemap_url) or sitemap_url) in self.state.visited_sitemaps:
                continue
            probe = await self.fetcher.head(sitemap_url)
            if probe.ok or probe.status in (405, 501):
                self.logger.info("Found sitemap: %s", location)
                await self._process(sitemap_url, domain, found, depth=0)

        self.logger.info("Total URLs discovered from sitemaps: %d", len(found))
        return list(found)

    async def _process(self, sitemap_url: str, domain: str, found: Dict[str, None], depth: int) -> None:
        if not is_in_domain(sitemap_url, domain):
            self.logger.info("Off-domain sitemap skipped: %s", sitemap_url)
            return
        if depth > self.max_depth:
            self.logger.warning("Sitemap nesting deeper than %d skipped: %s", self.max_depth, sitemap_url)
            return
        if not self.state.mark_sitemap_visited(sitemap_url):
            return
        try:
            await self._parse_one(sitemap_url, domain, found, depth)
        except Exception as exc:
            self.logger.warning("Failed to process sitemap %s: %s", sitemap_url, exc)

    async def _parse_one(self, sitemap_url: str, domain: str, found: Dict[str, None], depth: int) -> None:
        result = await self.fetcher.get(sitemap_url)
        if not result.ok or not result.content:
            self.logger.warning(
                "Sitemap %s unavailable (%s)", sitemap_url, result.status or result.error
            )
            return
        try:
            doc = parse_sitemap(result.content)
        except ValueError as exc:
            self.logger.warning("Malformed sitemap %s: %s", sitemap_url, exc)
            return

        if doc.kind == "sitemapindex":
            self.logger.debug("Sitemap index %s -> %d children", sitemap_url, len(doc.locs))
            for child in doc.locs:
                await self._process(urljoin(sitemap_url, child), domain, found, depth + 1)
        else:
            added = 0
            for loc in doc.locs:
                canonical = normalize_url(loc, base=sitemap_url)
                if canonical and is_in_domain(canonical, domain) and canonical not in found:
                    found[canonical] = None
                    added += 1
            self.logger.debug("Added %d URLs from sitemap %s", added, sitemap_url)

        for page_url in find_paginated_sitemaps(result.content, sitemap_url):
            await self._process(page_url, domain, found, depth + 1)
