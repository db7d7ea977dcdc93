# File: domain_scout/generators/__init__.py
"""domain_scout.generators: детерминированные кандидаты путей без сетевых запросов."""

from .archive import ArchivePatternGenerator
from .paths import DEFAULT_SECTIONS, PathPatternGenerator

__all__ = ["ArchivePatternGenerator", "PathPatternGenerator", "DEFAULT_SECTIONS"]
