# File: domain_scout/report/__init__.py
"""domain_scout.report: генерация отчётов (JSON и HTML), используемая CLI и тестами."""

from __future__ import annotations

from domain_scout.report.html_report import DEFAULT_TEMPLATE_DIR, render_html
from domain_scout.report.json_report import render_json

__all__ = ["render_json", "render_html", "DEFAULT_TEMPLATE_DIR"]
