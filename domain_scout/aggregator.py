# File: domain_scout/aggregator.py
"""domain_scout.aggregator: сборка итогового DiscoveryRunResult из состояния прогона."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from domain_scout.crawler.models import DiscoveredURL, DiscoveryMethod
from domain_scout.dedup import DiscoveryRunState


@dataclass(slots=True)
class DiscoveryMetrics:
    """Качество и производительность прогона."""

    duplicates_filtered: int = 0
    rejected: int = 0
    fetch_errors: int = 0
    requests: int = 0
    average_depth: float = 0.0
    average_relevance: float = 0.0
    urls_per_second: float = 0.0


@dataclass(slots=True)
class DiscoveryRunResult:
    """Единственный внешний результат одного прогона обнаружения."""

    total_urls: int = 0
    breakdown_by_method: Dict[str, int] = field(default_factory=dict)
    urls: List[DiscoveredURL] = field(default_factory=list)
    processing_time_ms: int = 0
    coverage_estimate: float = 0.0
    aliases: Dict[str, str] = field(default_factory=dict)
    terminated_reason: Optional[str] = None
    metrics: DiscoveryMetrics = field(default_factory=DiscoveryMetrics)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalUrls": self.total_urls,
            "breakdownByMethod": dict(self.breakdown_by_method),
            "urls": [u.to_dict() for u in self.urls],
            "processingTimeMs": self.processing_time_ms,
            "coverageEstimate": self.coverage_estimate,
            "aliases": dict(self.aliases),
            "terminatedReason": self.terminated_reason,
            "metrics": {
                "duplicatesFiltered": self.metrics.duplicates_filtered,
                "rejected": self.metrics.rejected,
                "fetchErrors": self.metrics.fetch_errors,
                "requests": self.metrics.requests,
                "averageDepth": self.metrics.average_depth,
                "averageRelevance": self.metrics.average_relevance,
                "urlsPerSecond": self.metrics.urls_per_second,
            },
        }

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление результата."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def empty_breakdown() -> Dict[str, int]:
    return {method.value: 0 for method in DiscoveryMethod}


def coverage_estimate(total: int, expected_total: int) -> float:
    """Процент ожидаемого объёма сайта, не больше 100."""
    if expected_total <= 0:
        return 0.0
    return round(min(100.0, total / expected_total * 100.0), 2)


def aggregate_results(
    state: DiscoveryRunState,
    *,
    processing_time_ms: int,
    expected_total: int,
    fetch_errors: int = 0,
    requests: int = 0,
) -> DiscoveryRunResult:
    """Собирает все части отчёта в DiscoveryRunResult."""
    urls = state.urls
    breakdown = empty_breakdown()
    for entry in urls:
        breakdown[entry.discovery_method.value] += 1

    total = len(urls)
    seconds = processing_time_ms / 1000.0
    metrics = DiscoveryMetrics(
        duplicates_filtered=state.duplicates,
        rejected=state.rejected,
        fetch_errors=fetch_errors,
        requests=requests,
        average_depth=round(sum(u.depth for u in urls) / total, 3) if total else 0.0,
        average_relevance=round(sum(u.estimated_relevance for u in urls) / total, 3) if total else 0.0,
        urls_per_second=round(total / seconds, 3) if seconds > 0 else 0.0,
    )
    return DiscoveryRunResult(
        total_urls=total,
        breakdown_by_method=breakdown,
        urls=urls,
        processing_time_ms=processing_time_ms,
        coverage_estimate=coverage_estimate(total, expected_total),
        aliases=dict(state.aliases),
        terminated_reason=state.stop_reason,
        metrics=metrics,
    )
