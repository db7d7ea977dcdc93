# === FILE: domain_scout/config.py ===
"""
Модуль для загрузки и валидации параметров обнаружения URL (DomainScout).
Схема описана моделью Pydantic; значения по умолчанию совпадают с configs/default.yaml.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

DEFAULT_PRIMARY_KEYWORDS: List[str] = ["diabetes", "insulin", "glucose"]
DEFAULT_SECONDARY_KEYWORDS: List[str] = ["health", "nutrition", "care"]
DEFAULT_GENERAL_KEYWORDS: List[str] = ["resource", "tool", "community"]

DEFAULT_BLOCKED_PATHS: List[str] = [
    "/admin",
    "/login",
    "/search",
    "/cart",
    "/checkout",
    "/wp-admin",
    "/wp-content",
    "/api/",
    "/ajax/",
    "/account",
    "/donate/payment",
    "/unsubscribe",
    "/privacy-policy",
]

DEFAULT_EXTENSION_BLACKLIST: List[str] = [
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".jpg", ".jpeg", ".png", ".gif", ".svg", ".zip", ".mp3", ".mp4",
]

DEFAULT_SEED_PATHS: List[str] = ["/", "/about", "/resources", "/community", "/news", "/blog"]

DEFAULT_PATH_SUFFIXES: List[str] = [
    "overview", "basics", "faq", "guide", "getting-started", "resources",
]

DEFAULT_ARCHIVE_PREFIXES: List[str] = ["/news", "/blog", "/articles", "/press-releases"]


class DiscoveryOptions(BaseModel):
    """Параметры одного прогона обнаружения URL для домена."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    # бюджет и глубина
    max_urls: int = Field(2500, ge=1, description="Жесткий лимит принятых URL.")
    max_depth: int = Field(4, ge=0, description="Число уровней BFS-обхода ссылок.")

    # темп запросов
    rate_limit_delay_ms: int = Field(300, ge=0, description="Пауза между запросами (мс).")
    conservative_delay_ms: int = Field(1000, ge=0, description="Пауза под нагрузкой (мс).")
    high_volume_threshold: int = Field(200, ge=0, description="Порог URL для замедления.")
    respect_robots_txt: bool = Field(True, description="Соблюдать robots.txt.")

    # фильтры путей и релевантность
    allowed_path_patterns: List[str] = Field(default_factory=list)
    blocked_path_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_BLOCKED_PATHS))
    file_extension_blacklist: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSION_BLACKLIST)
    )
    relevance_threshold: float = Field(0.3, ge=0.0, le=1.0)
    promising_threshold: float = Field(0.3, ge=0.0, le=1.0)
    primary_keywords: List[str] = Field(default_factory=lambda: list(DEFAULT_PRIMARY_KEYWORDS))
    secondary_keywords: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SECONDARY_KEYWORDS)
    )
    general_keywords: List[str] = Field(default_factory=lambda: list(DEFAULT_GENERAL_KEYWORDS))

    # обход ссылок
    seed_paths: List[str] = Field(default_factory=lambda: list(DEFAULT_SEED_PATHS))
    max_urls_per_level: int = Field(50, ge=1, description="Лимит фронтира следующего уровня.")
    batch_size: int = Field(10, ge=1, description="Размер пакета параллельных запросов.")

    # HTTP
    timeout: float = Field(10.0, gt=0, description="Таймаут GET-запроса (секунд).")
    head_timeout: float = Field(5.0, gt=0, description="Таймаут HEAD-запроса (секунд).")
    max_redirects: int = Field(5, ge=0, description="Максимум переходов по редиректам.")
    retry_times: int = Field(2, ge=0, description="Число повторных попыток при 5xx/429.")
    user_agent: str = Field("DomainScoutBot/1.0", min_length=1, description="User-Agent.")

    # sitemap и отпечатки
    max_sitemap_depth: int = Field(3, ge=0)
    fingerprint_content: bool = True
    min_fingerprint_chars: int = Field(200, ge=1)

    # генераторы путей
    extract_navigation: bool = True
    max_generated_paths: int = Field(100, ge=0)
    path_suffixes: List[str] = Field(default_factory=lambda: list(DEFAULT_PATH_SUFFIXES))
    archive_prefixes: List[str] = Field(default_factory=lambda: list(DEFAULT_ARCHIVE_PREFIXES))
    archive_years: int = Field(2, ge=0, le=10)
    archive_items_per_month: int = Field(1, ge=0, le=10)
    max_archive_candidates: int = Field(200, ge=0)

    # оценка покрытия
    expected_total_urls: int = Field(1311, ge=1)

    wordlists: Dict[str, str] = Field(default_factory=dict, description="Пути к словарям.")

    @field_validator(
        "seed_paths", "allowed_path_patterns", "archive_prefixes", mode="before"
    )
    def _leading_slash(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [p if str(p).startswith("/") else f"/{p}" for p in v]
        return v

    @field_validator("file_extension_blacklist", mode="before")
    def _dotted_extensions(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [e.lower() if str(e).startswith(".") else f".{str(e).lower()}" for e in v]
        return v

    @model_validator(mode="after")
    def _check_wordlists_exist(self) -> DiscoveryOptions:
        missing = [p for p in self.wordlists.values() if not Path(p).is_file()]
        if missing:
            raise _missing(missing[0])
        return self

    @property
    def keyword_tiers(self) -> List[List[str]]:
        return [self.primary_keywords, self.secondary_keywords, self.general_keywords]

    def with_overrides(self, **overrides: Any) -> DiscoveryOptions:
        """Возвращает проверенную копию с переопределёнными полями."""
        if not overrides:
            return self
        return type(self).model_validate({**self.model_dump(), **overrides})


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")

# суффикс файла -> (название формата, функция разбора, её исключение)
_PARSERS: Dict[str, Tuple[str, Callable[[str], Any], type]] = {
    ".yaml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".yml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".json": ("JSON", json.loads, json.JSONDecodeError),
}


def _missing(path: Union[str, Path]) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path))


def _read_mapping(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    if suffix not in _PARSERS:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")
    fmt, parse, error = _PARSERS[suffix]
    try:
        data = parse(path.read_text(encoding="utf-8")) or {}
    except error as exc:
        raise ValueError(f"Файл {path} не разбирается как {fmt}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"{fmt}-конфиг {path} должен содержать словарь, а не {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> DiscoveryOptions:
    """
    Читает YAML/JSON-конфиг (по умолчанию configs/default.yaml) и возвращает DiscoveryOptions.
    Отсутствующий файл даёт FileNotFoundError, битый формат ValueError,
    не-словарь на верхнем уровне TypeError.
    """
    if path is None:
        source = DEFAULT_CONFIG_PATH
        if not source.exists():
            raise _missing(source)
    else:
        source = Path(path).expanduser().resolve()
        if not source.is_file():
            raise _missing(source)
    return DiscoveryOptions(**_read_mapping(source))


__all__ = ["DEFAULT_CONFIG_PATH", "DiscoveryOptions", "ValidationError", "load_config"]
