# === FILE: domain_scout/parser/html_parser.py ===
"""HTML parsing utilities for DomainScout.

Two helpers feed the discovery pipeline:

* :func:`extract_anchor_links`: absolute URLs of ``<a href>`` tags in document
  order, optionally limited to navigation regions;
* :func:`extract_main_text`: visible text of the largest main-content region,
  the input of content fingerprinting.

Both accept raw markup and never raise on broken HTML; BeautifulSoup's
``html.parser`` recovers from whatever it is given.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import List
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

__all__: Sequence[str] = (
    "NON_CONTENT_TAGS",
    "MAIN_CONTENT_SELECTORS",
    "NAVIGATION_SELECTORS",
    "extract_anchor_links",
    "extract_main_text",
)

NON_CONTENT_TAGS: tuple[str, ...] = (
    "script", "style", "noscript", "template", "nav", "header", "footer", "aside", "form",
)

MAIN_CONTENT_SELECTORS: tuple[str, ...] = (
    "main",
    "article",
    "[role=main]",
    "#content",
    ".content",
    ".main-content",
    ".post-content",
)

NAVIGATION_SELECTORS: tuple[str, ...] = (
    "nav",
    ".navigation",
    ".menu",
    ".main-menu",
    ".primary-menu",
    ".header-menu",
    ".site-navigation",
    ".navbar",
)

_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:", "data:")


def _base_href(soup: BeautifulSoup, page_url: str) -> str:
    base = soup.find("base", href=True)
    if isinstance(base, Tag):
        href = base.get("href")
        if isinstance(href, str) and href.strip():
            return urljoin(page_url, href.strip())
    return page_url


def extract_anchor_links(
    html: str, page_url: str, *, navigation_only: bool = False
) -> List[str]:
    """Return unique absolute http(s) links found in anchors, in document order."""
    soup = BeautifulSoup(html, "html.parser")
    base = _base_href(soup, page_url)

    if navigation_only:
        anchors: list[Tag] = []
        for region in soup.select(", ".join(NAVIGATION_SELECTORS)):
            anchors.extend(a for a in region.find_all("a", href=True) if isinstance(a, Tag))
    else:
        anchors = [a for a in soup.find_all("a", href=True) if isinstance(a, Tag)]

    seen: set[str] = set()
    links: List[str] = []
    for tag in anchors:
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if not raw or raw.startswith("#") or raw.lower().startswith(_SKIP_SCHEMES):
            continue
        try:
            absolute = urljoin(base, raw)
            scheme = urlsplit(absolute).scheme
        except ValueError:
            continue
        if scheme in ("http", "https") and absolute not in seen:
            seen.add(absolute)
            links.append(absolute)
    return links


def extract_main_text(html: str) -> str:
    """Visible text of the largest main-content container, else of ``<body>``."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(list(NON_CONTENT_TAGS)):
        element.decompose()

    best = ""
    for region in soup.select(", ".join(MAIN_CONTENT_SELECTORS)):
        text = region.get_text(" ", strip=True)
        if len(text) > len(best):
            best = text
    if best:
        return best

    body = soup.body or soup
    return body.get_text(" ", strip=True)
