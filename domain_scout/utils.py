# File: domain_scout/utils.py
"""domain_scout.utils: канонизация URL, проверка домена и работа со словарями путей."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Collection, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar, Union
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from domain_scout.logger import logger

__all__: Sequence[str] = (
    "TRACKING_PARAMS",
    "normalize_url",
    "is_in_domain",
    "extract_host",
    "normalize_domain",
    "path_depth",
    "read_wordlist",
    "remove_duplicates",
    "chunked",
    "robots_path_allowed",
)

T = TypeVar("T")

#: Query parameters that never change page content.
TRACKING_PARAMS: frozenset[str] = frozenset(
    {
        "gclid", "fbclid", "msclkid", "dclid", "yclid", "igshid",
        "mc_cid", "mc_eid", "_ga", "_gl", "_hsenc", "_hsmi",
        "mkt_tok", "ref", "spm",
    }
)
_TRACKING_PREFIXES: tuple[str, ...] = ("utm_",)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _is_tracking(name: str) -> bool:
    key = name.lower()
    return key in TRACKING_PARAMS or key.startswith(_TRACKING_PREFIXES)


def normalize_url(url: str, base: Optional[str] = None) -> Optional[str]:
    """Приводит URL к каноническому виду или возвращает None для некорректного ввода.

    Правила применяются по порядку: схема https, хост и путь в нижнем регистре,
    удаление трекинговых параметров, удаление фрагмента, удаление одного
    завершающего слеша (кроме корня).
    """
    if not isinstance(url, str):
        return None
    raw = url.strip()
    if not raw:
        return None
    try:
        if base:
            raw = urljoin(base, raw)
        parts = urlsplit(raw)
        scheme = parts.scheme.lower()
        if scheme not in ("http", "https"):
            return None
        host = (parts.hostname or "").lower().rstrip(".")
        port = parts.port
    except ValueError:
        logger.debug("Malformed URL skipped: %r", url)
        return None
    if not host:
        return None

    netloc = host
    if port is not None and port != _DEFAULT_PORTS.get(scheme) and port != 443:
        netloc = f"{host}:{port}"

    path = (parts.path or "/").lower()
    if not path.startswith("/"):
        path = "/" + path
    if path != "/" and path.endswith("/"):
        path = path[:-1]

    query = ""
    if parts.query:
        kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if not _is_tracking(k)]
        query = urlencode(kept, doseq=True)

    return urlunsplit(("https", netloc, path, query, ""))


def extract_host(url: str) -> str:
    """Возвращает хост URL в нижнем регистре (без порта)."""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def is_in_domain(url: str, domain: str) -> bool:
    """True, если хост URL совпадает с доменом или является его поддоменом."""
    host = extract_host(url)
    target = domain.lower().strip().rstrip(".")
    if target.startswith("www."):
        target = target[4:]
    if not host or not target:
        return False
    return host == target or host.endswith("." + target)


def path_depth(url: str) -> int:
    """Число непустых сегментов пути."""
    try:
        return len([s for s in urlsplit(url).path.split("/") if s])
    except ValueError:
        return 0


def read_wordlist(path: Union[str, Path]) -> List[str]:
    """Читает wordlist, возвращает непустые строки без пробелов и комментариев."""
    p = Path(path)
    if not p.exists():
        logger.error("Wordlist not found: %s", p)
        raise FileNotFoundError(f"Wordlist file not found: {p}")
    words = [
        line.strip()
        for line in p.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]
    logger.debug("Loaded %d entries from wordlist %s", len(words), p)
    return words


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique


def chunked(items: Iterable[T], size: int) -> Iterator[List[T]]:
    """Разбивает последовательность на пакеты фиксированного размера."""
    batch: List[T] = []
    for item in items:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


def normalize_domain(domain: str) -> str:
    """Оставляет только хост: без схемы, пути, порта и завершающей точки."""
    raw = domain.strip()
    if "://" not in raw:
        raw = "https://" + raw
    host = extract_host(raw).rstrip(".")
    if not host:
        raise ValueError(f"Invalid domain: {domain!r}")
    return host


_ROBOTS_WILDCARD_RE = re.compile(r"[*$]")


@lru_cache(maxsize=1024)
def _robots_pattern(pattern: str, ignore_case: bool) -> re.Pattern[str]:
    esc = re.escape(pattern).replace(r"\*", ".*")
    if pattern.endswith("$"):
        esc = esc[:-2] + "$"
    return re.compile(f"^{esc}", re.IGNORECASE if ignore_case else 0)


def robots_path_allowed(
    rules: Iterable[Tuple[str, str]], path: str, *, ignore_case: bool = False
) -> bool:
    """
    Применяет правила robots.txt (``("allow"|"disallow", pattern)``) к пути с query.
    Побеждает самое длинное совпадение без учёта ``*``/``$``; при равенстве Allow.
    Без совпадений путь разрешён.
    """
    best_len = -1
    allow = True
    for directive, pattern in rules:
        if not pattern or not _robots_pattern(pattern, ignore_case).match(path):
            continue
        length = len(_ROBOTS_WILDCARD_RE.sub("", pattern))
        if length > best_len or (length == best_len and directive == "allow"):
            best_len = length
            allow = directive == "allow"
    return allow
