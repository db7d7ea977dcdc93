"""Генератор путей по каталогу разделов и типовых подстраниц."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from domain_scout.config import DiscoveryOptions
from domain_scout.utils import normalize_url, read_wordlist, remove_duplicates

logger = logging.getLogger("DomainScout.paths")

DEFAULT_SECTIONS: Sequence[str] = (
    "/about",
    "/resources",
    "/community",
    "/research",
    "/professionals",
    "/health-wellness",
    "/food-nutrition",
    "/tools-and-resources",
)


class PathPatternGenerator:
    """Декартово произведение разделов и суффиксов подстраниц с ограничением объёма."""

    def __init__(
        self,
        sections: Sequence[str],
        suffixes: Sequence[str],
        max_paths: int,
        extra_paths: Optional[Sequence[str]] = None,
    ) -> None:
        """Инициализирует генератор каталогом разделов, суффиксами и лимитом."""
        self.sections: List[str] = [s.rstrip("/") or "/" for s in sections]
        self.suffixes: List[str] = [s.strip("/") for s in suffixes if s.strip("/")]
        self.max_paths = max_paths
        self.extra_paths: List[str] = [
            p if p.startswith("/") else f"/{p}" for p in (extra_paths or [])
        ]

    @classmethod
    def from_options(cls, options: DiscoveryOptions) -> "PathPatternGenerator":
        """Строит генератор из параметров; словарь ``wordlists['paths']`` дополняет каталог."""
        sections = options.allowed_path_patterns or list(DEFAULT_SECTIONS)
        extra: List[str] = []
        wordlist: Union[str, Path, None] = options.wordlists.get("paths")
        if wordlist:
            extra = read_wordlist(wordlist)
        return cls(sections, options.path_suffixes, options.max_generated_paths, extra)

    def paths(self) -> List[str]:
        """Пути без домена: сначала разделы и словарь, затем подстраницы."""
        candidates: List[str] = []
        bases = remove_duplicates(self.sections + self.extra_paths)
        candidates.extend(bases)
        for base in bases:
            prefix = "" if base == "/" else base
            candidates.extend(f"{prefix}/{suffix}" for suffix in self.suffixes)
        return remove_duplicates(candidates)[: self.max_paths]

    def generate(self, domain: str) -> List[str]:
        """Возвращает канонические URL кандидатов для домена (без проверки существования)."""
        urls = [normalize_url(f"https://{domain}{path}") for path in self.paths()]
        result = remove_duplicates([u for u in urls if u])
        logger.debug("Generated %d path candidates for %s", len(result), domain)
        return result
