# domain_scout/crawler/models.py
"""
Data models for the DomainScout discovery engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from domain_scout.utils import robots_path_allowed


class DiscoveryMethod(str, Enum):
    """Strategy that first proposed an accepted URL."""

    SITEMAP = "sitemap"
    LINK_FOLLOWING = "link-following"
    PATH_GENERATION = "path-generation"
    ARCHIVE_DISCOVERY = "archive-discovery"
    MANUAL = "manual"

    @property
    def is_generated(self) -> bool:
        """Generated candidates were never seen in a real document."""
        return self in (DiscoveryMethod.PATH_GENERATION, DiscoveryMethod.ARCHIVE_DISCOVERY)


@dataclass(slots=True)
class FetchResult:
    """Outcome of one HTTP exchange; ``status`` is None when no response arrived."""

    url: str
    status: Optional[int]
    content: Optional[str] = None
    content_type: str = ""
    error: Optional[str] = None
    requested_url: str = ""
    timed_out: bool = False
    # False when repeating the request cannot help (redirect loop, malformed URL)
    retryable: bool = True

    @property
    def ok(self) -> bool:
        return self.status is not None and 200 <= self.status < 300

    @property
    def reachable(self) -> bool:
        return self.status is not None

    @property
    def is_html(self) -> bool:
        return "html" in self.content_type.lower()


@dataclass(frozen=True, slots=True)
class RobotsPolicy:
    """Domain-level robots.txt outcome, read-only for the whole run."""

    allowed: bool = True
    crawl_delay_ms: int = 0
    sitemap_urls: tuple[str, ...] = ()
    # ("allow" | "disallow", pattern) of the group matching our user agent
    rules: tuple[tuple[str, str], ...] = ()
    has_crawl_delay: bool = False

    @classmethod
    def permissive(cls, default_delay_ms: int = 0) -> RobotsPolicy:
        return cls(allowed=True, crawl_delay_ms=default_delay_ms)

    @property
    def disallowed_paths(self) -> tuple[str, ...]:
        return tuple(pattern for directive, pattern in self.rules if directive == "disallow")

    def can_fetch(self, path: str) -> bool:
        """*path* may carry a query; canonical paths are lower-cased, so matching ignores case."""
        if not self.allowed:
            return False
        return robots_path_allowed(self.rules, path, ignore_case=True)


@dataclass(frozen=True, slots=True)
class DiscoveredURL:
    """One accepted canonical URL; created once per run and never mutated."""

    url: str
    discovered_at: datetime
    discovery_method: DiscoveryMethod
    depth: int
    estimated_relevance: float
    parent_url: Optional[str] = None
    category: str = "default"

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "discoveredAt": self.discovered_at.isoformat(),
            "discoveryMethod": self.discovery_method.value,
            "depth": self.depth,
            "estimatedRelevance": self.estimated_relevance,
            "parentUrl": self.parent_url,
            "category": self.category,
        }


@dataclass(slots=True)
class SitemapDocument:
    """Parsed sitemap: leaf page URLs or nested sitemap URLs."""

    kind: str  # "urlset" | "sitemapindex" | "unknown"
    locs: List[str] = field(default_factory=list)
