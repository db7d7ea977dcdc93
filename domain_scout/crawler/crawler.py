# === FILE: domain_scout/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import time
from typing import List, Set, Tuple

from domain_scout.config import DiscoveryOptions
from domain_scout.crawler.link_extractor import LinkExtractor
from domain_scout.crawler.models import DiscoveredURL, DiscoveryMethod
from domain_scout.dedup import Candidate, DeduplicationPipeline
from domain_scout.logger import get_logger
from domain_scout.utils import chunked, normalize_url, remove_duplicates

__all__ = ("LinkFollowingStrategy",)


class LinkFollowingStrategy:
    """Breadth-first link following over discrete depth levels.

    Seeds are expanded but never accepted just for being seeds. Each accepted
    link scoring at least ``promising_threshold`` competes for a place in the
    next level, capped at ``max_urls_per_level`` (higher relevance first, then
    first-seen order).
    """

    def __init__(
        self,
        domain: str,
        options: DiscoveryOptions,
        pipeline: DeduplicationPipeline,
        extractor: LinkExtractor,
    ) -> None:
        self.domain = domain
        self.options = options
        self.pipeline = pipeline
        self.extractor = extractor
        self.visited: Set[str] = set()
        self.logger = get_logger("frontier")

    def seeds(self) -> List[str]:
        base = f"https://{self.domain}"
        return remove_duplicates([f"{base}{path}" for path in self.options.seed_paths])

    async def run(self) -> List[DiscoveredURL]:
        state = self.pipeline.state
        opts = self.options
        start = time.monotonic()
        accepted_all: List[DiscoveredURL] = []
        current = self.seeds()

        for depth in range(opts.max_depth):
            if not current or state.stopped:
                break
            self.logger.info("Depth %d: processing %d URLs", depth + 1, len(current))
            promising: List[Tuple[float, int, str]] = []

            for batch in chunked(current, opts.batch_size):
                if state.stopped:
                    break
                pages = [u for u in batch if (normalize_url(u) or u) not in self.visited]
                self.visited.update(normalize_url(u) or u for u in pages)
                link_lists = await asyncio.gather(*(self.extractor.extract_links(p) for p in pages))

                candidates = [
                    Candidate(link, DiscoveryMethod.LINK_FOLLOWING, depth + 1, normalize_url(page) or page)
                    for page, links in zip(pages, link_lists)
                    for link in links
                ]
                for chunk in chunked(candidates, opts.batch_size):
                    if state.stopped:
                        break
                    for entry in await self.pipeline.admit_batch(chunk):
                        accepted_all.append(entry)
                        if entry.estimated_relevance >= opts.promising_threshold and entry.url not in self.visited:
                            promising.append((-entry.estimated_relevance, len(promising), entry.url))

            promising.sort()
            current = [url for _, _, url in promising[: opts.max_urls_per_level]]
            self.logger.info("Found %d URLs for next level", len(current))

        duration = time.monotonic() - start
        self.logger.info(
            "Link following accepted %d URLs in %.2f s (%d pages expanded)",
            len(accepted_all), duration, len(self.visited),
        )
        return accepted_all
