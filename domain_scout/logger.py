# === FILE: domain_scout/logger.py ===
"""Logging setup for **DomainScout**.

* One project logger, ``DomainScout``; every component writes to a child
  (``DomainScout.engine``, ``DomainScout.sitemap`` ...) obtained with
  :func:`get_logger`, so a single :func:`configure` call governs the whole run.
* Console records go to *stderr*: stdout belongs to the JSON result printed by
  ``domain-scout discover``.
* An optional logfile rotates at 5 MB, keeping three backups.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Iterable, Union

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "DomainScout"

# aiohttp пишет в эти логгеры на каждом соединении
NOISY_LOGGERS: Final[tuple[str, ...]] = ("aiohttp.client", "aiohttp.internal", "asyncio")

_LevelT = Union[int, str]


def _console_handler(fmt: str) -> logging.Handler:
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(fmt))
    return console


def _rotating_handler(path: Path | str, fmt: str) -> logging.Handler:
    rotating = RotatingFileHandler(
        filename=str(path), maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    rotating.setFormatter(logging.Formatter(fmt))
    return rotating


def quiet_libraries(names: Iterable[str] = NOISY_LOGGERS, level: _LevelT = logging.WARNING) -> None:
    """Поднимает уровень сторонних логгеров, чтобы не засорять вывод прогона."""
    for name in names:
        logging.getLogger(name).setLevel(level)


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """(Re)configure the ``DomainScout`` logger.

    Parameters
    ----------
    level
        Numeric or textual level, e.g. ``"DEBUG"``.
    log_file
        Optional rotating logfile in addition to stderr.
    log_format
        :class:`logging.Formatter` format string.
    replace_handlers
        Drop previously attached handlers first.
    """
    project = logging.getLogger(LOGGER_NAME)
    project.setLevel(level)
    if replace_handlers:
        project.handlers.clear()
    project.addHandler(_console_handler(log_format))
    if log_file is not None:
        project.addHandler(_rotating_handler(log_file, log_format))
    project.propagate = False
    return project


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """CLI entry: fresh handlers plus quieted third-party loggers."""
    quiet_libraries()
    return configure(level=level, log_file=log_file, log_format=log_format)


def get_logger(component: str) -> logging.Logger:
    """Return the child logger ``DomainScout.<component>``."""
    return logging.getLogger(f"{LOGGER_NAME}.{component}")


logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "get_logger", "quiet_libraries"]
