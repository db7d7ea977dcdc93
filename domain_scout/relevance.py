# File: domain_scout/relevance.py
"""Path-based relevance scoring and the inclusion filter applied before any fetch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple
from urllib.parse import urlsplit

from domain_scout.config import DiscoveryOptions

__all__ = ["TIER_SCORES", "DEFAULT_SCORE", "score_url", "classify_url", "RelevanceFilter"]

#: (score, category) per keyword tier, strongest first.
TIER_SCORES: Tuple[Tuple[float, str], ...] = (
    (0.9, "primary"),
    (0.7, "secondary"),
    (0.5, "general"),
)
DEFAULT_SCORE: float = 0.3
DEFAULT_CATEGORY: str = "default"


def _path(url: str) -> str:
    try:
        return urlsplit(url).path.lower()
    except ValueError:
        return ""


def classify_url(url: str, keyword_tiers: Sequence[Sequence[str]]) -> Tuple[float, str]:
    """Return ``(score, category)`` of the first keyword tier matching the URL path."""
    path = _path(url)
    for (score, category), keywords in zip(TIER_SCORES, keyword_tiers):
        if any(k.lower() in path for k in keywords if k):
            return score, category
    return DEFAULT_SCORE, DEFAULT_CATEGORY


def score_url(url: str, keyword_tiers: Sequence[Sequence[str]]) -> float:
    """Relevance in ``[0, 1]``; see :func:`classify_url`."""
    return classify_url(url, keyword_tiers)[0]


@dataclass(slots=True)
class RelevanceFilter:
    """Allow/deny path filter combined with the keyword score threshold."""

    blocked: List[str]
    allowed: List[str]
    extensions: List[str]
    threshold: float
    keyword_tiers: List[List[str]]

    @classmethod
    def from_options(cls, options: DiscoveryOptions) -> "RelevanceFilter":
        return cls(
            blocked=[p.lower() for p in options.blocked_path_patterns],
            allowed=[p.lower() for p in options.allowed_path_patterns],
            extensions=list(options.file_extension_blacklist),
            threshold=options.relevance_threshold,
            keyword_tiers=options.keyword_tiers,
        )

    def is_blocked(self, url: str) -> bool:
        path = _path(url)
        if any(pattern in path for pattern in self.blocked):
            return True
        return path.endswith(tuple(self.extensions)) if self.extensions else False

    def is_relevant(self, url: str) -> bool:
        """Blocked paths never pass; otherwise an allowed pattern or the score must match."""
        if self.is_blocked(url):
            return False
        score = score_url(url, self.keyword_tiers)
        if not self.allowed:
            return score >= self.threshold
        path = _path(url)
        return path == "/" or any(path.startswith(p) for p in self.allowed) or score >= self.threshold
