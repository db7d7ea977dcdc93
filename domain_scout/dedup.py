# File: domain_scout/dedup.py
"""
Deduplication pipeline for discovered URLs.

Every candidate, whatever strategy proposed it, passes the same stages before
it becomes a :class:`~domain_scout.crawler.models.DiscoveredURL`:

    normalize -> domain check -> robots check -> relevance filter
    -> canonical/redirect probe -> content fingerprint -> accept (budget)

All run-scoped bookkeeping lives in :class:`DiscoveryRunState`, one instance
per discovery run. Its mutating methods are synchronous, so each
check-then-insert completes without yielding to the event loop.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple
from urllib.parse import urlsplit

from domain_scout.config import DiscoveryOptions
from domain_scout.crawler.fetcher import Fetcher
from domain_scout.crawler.models import DiscoveredURL, DiscoveryMethod, RobotsPolicy
from domain_scout.logger import get_logger
from domain_scout.parser.html_parser import extract_main_text
from domain_scout.relevance import RelevanceFilter, classify_url
from domain_scout.utils import is_in_domain, normalize_url, path_depth

__all__ = [
    "Candidate",
    "DiscoveryRunState",
    "CanonicalResolver",
    "ContentFingerprinter",
    "DeduplicationPipeline",
    "compute_content_hash",
    "normalize_content_for_hash",
]

logger = get_logger("dedup")

_WS_RE = re.compile(r"\s+")


def normalize_content_for_hash(text: str) -> str:
    """Collapse whitespace and lower-case the text."""
    return _WS_RE.sub(" ", text).strip().lower()


def compute_content_hash(content: str) -> str:
    """SHA-256 hex digest of *content*."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class Candidate:
    """A raw URL proposed by a discovery strategy."""

    url: str
    method: DiscoveryMethod
    depth: Optional[int] = None
    parent_url: Optional[str] = None


class DiscoveryRunState:
    """Deduplication sets and counters owned by one discovery run."""

    def __init__(self, max_urls: int) -> None:
        self.max_urls = max_urls
        self.claimed: Set[str] = set()
        self.accepted: Dict[str, DiscoveredURL] = {}
        self.aliases: Dict[str, str] = {}
        self.fingerprints: Dict[str, str] = {}
        self.visited_sitemaps: Set[str] = set()
        self.duplicates = 0
        self.rejected = 0
        self.stop_reason: Optional[str] = None

    def __len__(self) -> int:
        return len(self.accepted)

    def __contains__(self, url: object) -> bool:
        return url in self.accepted

    @property
    def budget_reached(self) -> bool:
        return len(self.accepted) >= self.max_urls

    @property
    def stopped(self) -> bool:
        return self.stop_reason is not None or self.budget_reached

    def stop(self, reason: str) -> None:
        if self.stop_reason is None:
            self.stop_reason = reason

    def claim(self, canonical: str) -> bool:
        """Reserve *canonical*; False if any earlier candidate already did."""
        if canonical in self.claimed:
            return False
        self.claimed.add(canonical)
        return True

    def add_alias(self, alias: str, representative: str) -> None:
        if alias != representative and alias not in self.accepted:
            self.aliases.setdefault(alias, representative)

    def claim_fingerprint(self, fingerprint: str, canonical: str) -> str:
        """Return the representative URL for *fingerprint* (the first claimant)."""
        return self.fingerprints.setdefault(fingerprint, canonical)

    def release_fingerprint(self, fingerprint: str, canonical: str) -> None:
        if self.fingerprints.get(fingerprint) == canonical:
            del self.fingerprints[fingerprint]

    def accept(self, entry: DiscoveredURL) -> bool:
        """Insert *entry* unless the budget is exhausted or it is already present."""
        if self.budget_reached or entry.url in self.accepted:
            return False
        self.accepted[entry.url] = entry
        if self.budget_reached:
            self.stop("budget")
        return True

    @property
    def urls(self) -> List[DiscoveredURL]:
        return list(self.accepted.values())

    def mark_sitemap_visited(self, sitemap_url: str) -> bool:
        key = normalize_url(sitemap_url) or sitemap_url
        if key in self.visited_sitemaps:
            return False
        self.visited_sitemaps.add(key)
        return True


class CanonicalResolver:
    """HEAD-with-redirects probe returning the normalized terminal URL."""

    def __init__(self, fetcher: Fetcher, max_redirects: int = 5) -> None:
        self.fetcher = fetcher
        self.max_redirects = max_redirects

    async def probe(self, url: str) -> Tuple[str, Optional[int]]:
        """Return ``(canonical, status)``; status is None when nothing answered."""
        fallback = normalize_url(url) or url
        result = await self.fetcher.head(url, max_redirects=self.max_redirects)
        if result.status in (405, 501):
            result = await self.fetcher.get(url, max_redirects=self.max_redirects)
        if result.status is None:
            return fallback, None
        return normalize_url(result.url) or fallback, result.status

    async def resolve_canonical(self, url: str) -> str:
        """Terminal canonical URL, or the normalized input on any failure."""
        canonical, _ = await self.probe(url)
        return canonical


class ContentFingerprinter:
    """Stable hash of a page's main text; None when content is unknown or too short."""

    def __init__(self, fetcher: Fetcher, min_chars: int = 200) -> None:
        self.fetcher = fetcher
        self.min_chars = min_chars

    async def fingerprint(self, url: str) -> Optional[str]:
        result = await self.fetcher.get(url)
        if not result.ok or not result.content:
            return None
        if result.content_type and not result.is_html:
            return None
        try:
            text = normalize_content_for_hash(extract_main_text(result.content))
        except Exception as exc:
            logger.debug("Fingerprint parse failed for %s: %s", url, exc)
            return None
        if len(text) < self.min_chars:
            return None
        return compute_content_hash(text)


@dataclass(slots=True)
class _Inspection:
    candidate: Candidate
    canonical: str
    fingerprint: Optional[str]


class DeduplicationPipeline:
    """Admits candidates into a :class:`DiscoveryRunState`.

    Network work for a batch runs concurrently; acceptance then happens in
    batch order so the first-discovered URL wins fingerprint collisions.
    """

    def __init__(
        self,
        domain: str,
        options: DiscoveryOptions,
        state: DiscoveryRunState,
        resolver: CanonicalResolver,
        fingerprinter: Optional[ContentFingerprinter],
        *,
        policy: Optional[RobotsPolicy] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.domain = domain
        self.options = options
        self.state = state
        self.resolver = resolver
        self.fingerprinter = fingerprinter
        self.policy = policy
        self.relevance = RelevanceFilter.from_options(options)
        self.now = now

    # ------------------------------------------------------------------ #
    # cheap synchronous gates                                            #
    # ------------------------------------------------------------------ #

    def _passes_filters(self, canonical: str) -> bool:
        if not is_in_domain(canonical, self.domain):
            return False
        if self.options.respect_robots_txt and self.policy is not None:
            parts = urlsplit(canonical)
            target = (parts.path or "/") + (f"?{parts.query}" if parts.query else "")
            if not self.policy.can_fetch(target):
                return False
        return self.relevance.is_relevant(canonical)

    def precheck(self, url: str) -> Optional[str]:
        """Normalize and filter without any network I/O; None means rejected."""
        canonical = normalize_url(url)
        if canonical is None or not self._passes_filters(canonical):
            return None
        return canonical

    # ------------------------------------------------------------------ #
    # network stages                                                     #
    # ------------------------------------------------------------------ #

    async def _inspect(self, candidate: Candidate) -> Optional[_Inspection]:
        state = self.state
        if state.stopped:
            return None
        canonical = self.precheck(candidate.url)
        if canonical is None:
            state.rejected += 1
            logger.debug("Filtered %s", candidate.url)
            return None
        if not state.claim(canonical):
            state.duplicates += 1
            return None

        resolved, status = await self.resolver.probe(canonical)
        if status is None:
            if candidate.method.is_generated:
                state.rejected += 1
                return None
        elif not 200 <= status < 300:
            state.rejected += 1
            logger.debug("Rejected %s (HTTP %s)", canonical, status)
            return None

        if resolved != canonical:
            if not self._passes_filters(resolved):
                state.rejected += 1
                return None
            state.add_alias(canonical, resolved)
            if not state.claim(resolved):
                state.duplicates += 1
                return None
            canonical = resolved

        fingerprint = None
        if self.fingerprinter is not None:
            fingerprint = await self.fingerprinter.fingerprint(canonical)
        return _Inspection(candidate=candidate, canonical=canonical, fingerprint=fingerprint)

    def _accept(self, inspection: _Inspection) -> Optional[DiscoveredURL]:
        state = self.state
        canonical = inspection.canonical
        fp = inspection.fingerprint
        if fp is not None:
            owner = state.claim_fingerprint(fp, canonical)
            if owner != canonical:
                state.add_alias(canonical, owner)
                state.duplicates += 1
                logger.debug("Duplicate content: %s == %s", canonical, owner)
                return None

        candidate = inspection.candidate
        score, category = classify_url(canonical, self.options.keyword_tiers)
        entry = DiscoveredURL(
            url=canonical,
            discovered_at=self.now(),
            discovery_method=candidate.method,
            depth=candidate.depth if candidate.depth is not None else path_depth(canonical),
            estimated_relevance=score,
            parent_url=candidate.parent_url,
            category=category,
        )
        if not state.accept(entry):
            if fp is not None:
                state.release_fingerprint(fp, canonical)
            return None
        return entry

    async def admit_batch(self, candidates: Iterable[Candidate]) -> List[DiscoveredURL]:
        """Inspect *candidates* concurrently, then accept them in input order."""
        batch = list(candidates)
        if not batch or self.state.stopped:
            return []
        inspections = await asyncio.gather(*(self._inspect(c) for c in batch))
        accepted: List[DiscoveredURL] = []
        for inspection in inspections:
            if inspection is None:
                continue
            entry = self._accept(inspection)
            if entry is not None:
                accepted.append(entry)
        return accepted

    async def admit(self, candidate: Candidate) -> Optional[DiscoveredURL]:
        accepted = await self.admit_batch([candidate])
        return accepted[0] if accepted else None
