# domain_scout/crawler/link_extractor.py
"""
Link extraction for DomainScout: fetch a page and return its same-host links.
"""
from __future__ import annotations

from typing import List
from urllib.parse import urlsplit

from domain_scout.crawler.fetcher import Fetcher
from domain_scout.logger import get_logger
from domain_scout.parser.html_parser import extract_anchor_links


def same_host_links(links: List[str], page_url: str) -> List[str]:
    """Keep only links whose host equals the page host."""
    host = (urlsplit(page_url).hostname or "").lower()
    return [u for u in links if (urlsplit(u).hostname or "").lower() == host]


class LinkExtractor:
    """Returns raw (not yet normalized) absolute same-host links of a page."""

    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher
        self.logger = get_logger("links")

    async def extract_links(self, url: str, *, navigation_only: bool = False) -> List[str]:
        """
        Fetch *url* and extract anchors resolved against the final page URL.

        Ignores mailto:, javascript:, external hosts. Fetch failure → [].
        """
        result = await self.fetcher.get(url)
        if not result.ok or result.content is None:
            self.logger.debug("No links from %s (%s)", url, result.status or result.error)
            return []
        if result.content_type and not result.is_html:
            return []
        links = extract_anchor_links(result.content, result.url, navigation_only=navigation_only)
        return same_host_links(links, result.url)


__all__ = ["LinkExtractor", "same_host_links"]
