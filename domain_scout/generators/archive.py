"""Generator of conservative, time-windowed archive paths (news/blog style)."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, List, Optional, Sequence

from domain_scout.config import DiscoveryOptions
from domain_scout.utils import normalize_url, remove_duplicates

logger = logging.getLogger("DomainScout.archive")


class ArchivePatternGenerator:
    """prefix × recent years × (year page, months × (month page + item slots)).

    No daily granularity and a short year window keep the volume of
    non-existent candidates small; the total is additionally capped.
    """

    def __init__(
        self,
        prefixes: Sequence[str],
        years: int = 2,
        items_per_month: int = 1,
        max_candidates: int = 200,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.prefixes = [p.rstrip("/") for p in prefixes if p.strip("/")]
        self.years = years
        self.items_per_month = items_per_month
        self.max_candidates = max_candidates
        self.today = today or date.today

    @classmethod
    def from_options(
        cls, options: DiscoveryOptions, today: Optional[Callable[[], date]] = None
    ) -> "ArchivePatternGenerator":
        return cls(
            options.archive_prefixes,
            years=options.archive_years,
            items_per_month=options.archive_items_per_month,
            max_candidates=options.max_archive_candidates,
            today=today,
        )

    def paths(self) -> List[str]:
        current = self.today()
        paths: List[str] = []
        for prefix in self.prefixes:
            for year in range(current.year, current.year - self.years, -1):
                paths.append(f"{prefix}/{year}")
                last_month = current.month if year == current.year else 12
                for month in range(last_month, 0, -1):
                    month_path = f"{prefix}/{year}/{month:02d}"
                    paths.append(month_path)
                    paths.extend(f"{month_path}/{slot}" for slot in range(1, self.items_per_month + 1))
        return paths[: self.max_candidates]

    def generate(self, domain: str) -> List[str]:
        urls = [normalize_url(f"https://{domain}{path}") for path in self.paths()]
        result = remove_duplicates([u for u in urls if u])
        logger.debug("Generated %d archive candidates for %s", len(result), domain)
        return result
