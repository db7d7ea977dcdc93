# File: domain_scout/parser/sitemap_parser.py
"""domain_scout.parser.sitemap_parser: Модуль для парсинга sitemap.xml и извлечения URL."""

from __future__ import annotations

import re
from typing import List
from urllib.parse import urljoin

from lxml import etree

from domain_scout.crawler.models import SitemapDocument

__all__ = ["parse_sitemap", "find_paginated_sitemaps"]

_PAGINATED_RE = re.compile(r"""[^\s"'<>]*sitemap[^\s"'<>]*\.xml\?page=\d+""", re.IGNORECASE)
_LOC_RE = re.compile(r"<loc>\s*([^<\s]+)\s*</loc>", re.IGNORECASE)


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return etree.QName(tag).localname.lower()


def parse_sitemap(xml_content: str) -> SitemapDocument:
    """Разбирает XML sitemap и возвращает тип документа и URL из тегов <loc>.

    Args:
        xml_content: строка с содержимым sitemap.xml.

    Returns:
        SitemapDocument: ``kind`` = ``urlset`` (листовые страницы),
        ``sitemapindex`` (вложенные sitemap) или ``unknown``.

    Raises:
        ValueError: документ не удалось разобрать даже в режиме recover.

    Пример:
    ```python
    from domain_scout.parser.sitemap_parser import parse_sitemap

    with open('sitemap.xml', encoding='utf-8') as f:
        doc = parse_sitemap(f.read())
    print(doc.kind, doc.locs)
    ```
    """
    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(xml_content.strip().encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as exc:
        raise ValueError(f"Malformed sitemap XML: {exc}") from exc
    if root is None:
        raise ValueError("Malformed sitemap XML: empty document")

    kind = _local_name(root.tag)
    if kind == "urlset":
        entries = root.findall("{*}url/{*}loc") or root.findall(".//{*}loc")
    elif kind == "sitemapindex":
        entries = root.findall("{*}sitemap/{*}loc") or root.findall(".//{*}loc")
    else:
        # простой XML без стандартного корня: берём <loc> регулярным выражением
        return SitemapDocument(kind="unknown", locs=_LOC_RE.findall(xml_content))
    return SitemapDocument(kind=kind, locs=[e.text.strip() for e in entries if e.text and e.text.strip()])


def find_paginated_sitemaps(content: str, sitemap_url: str) -> List[str]:
    """Находит ссылки вида ``sitemap.xml?page=N`` и возвращает абсолютные URL."""
    found = dict.fromkeys(urljoin(sitemap_url, m) for m in _PAGINATED_RE.findall(content))
    return list(found)
