# === FILE: domain_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска DomainScout через командную строку.

Команды:
  discover DOMAIN   Обнаружить URL домена и вывести/сохранить отчёты
  config            Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (только stderr, если не указан)
  --log-format FORMAT Формат логирования

Команда discover опции:
  --max-urls N        Жёсткий лимит принятых URL
  --max-depth N       Число уровней обхода ссылок
  --rate-limit-ms N   Пауза между запросами (мс)
  --no-robots         Не соблюдать robots.txt
  --url URL           Дополнительный URL (можно повторять)
  --json PATH         Сохранить JSON-отчёт в файл
  --html PATH         Сохранить HTML-отчёт в файл
  --template DIR      Папка с Jinja2-шаблоном report.html.j2
  --pretty            Преформатировать JSON-вывод (отступ 2)
  --scan-timeout SEC  Таймаут всего прогона (секунд)

Пример:
  domain-scout discover diabetes.org --max-urls 500 --json out.json --pretty
"""
import asyncio
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from domain_scout import __version__
from domain_scout.config import DEFAULT_CONFIG_PATH, DiscoveryOptions, load_config
from domain_scout.engine import run_discovery
from domain_scout.logger import DEFAULT_FORMAT, init_logging
from domain_scout.report import render_html, render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg="red", err=True)
    sys.exit(1)


def _load_options(config_path):
    if config_path is None and not DEFAULT_CONFIG_PATH.exists():
        return DiscoveryOptions()
    return load_config(config_path)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-v", message="DomainScout, version %(version)s")
@click.option(
    "--config", "-c", "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Путь к файлу конфигурации YAML/JSON.",
)
@click.option(
    "--log-level", "log_level",
    default="INFO", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Уровень логирования",
)
@click.option(
    "--log-file", "log_file",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Путь к файлу логов (только stderr, если не указан)",
)
@click.option(
    "--log-format", "log_format",
    default=DEFAULT_FORMAT,
    show_default=True,
    help="Строка формата для логов",
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд DomainScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
    )
    try:
        cfg = _load_options(config_path)
    except (ValidationError, FileNotFoundError, ValueError, TypeError) as e:
        print_error(f"Ошибка загрузки конфигурации: {e}")
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command("discover", context_settings=CONTEXT_SETTINGS)
@click.argument("domain")
@click.option("--max-urls", "max_urls", type=click.IntRange(min=1), default=None,
              help="Жёсткий лимит принятых URL")
@click.option("--max-depth", "max_depth", type=click.IntRange(min=0), default=None,
              help="Число уровней обхода ссылок")
@click.option("--rate-limit-ms", "rate_limit_ms", type=click.IntRange(min=0), default=None,
              help="Пауза между запросами (мс)")
@click.option("--no-robots", is_flag=True, help="Не соблюдать robots.txt")
@click.option("--url", "manual_urls", multiple=True, help="Дополнительный URL для проверки")
@click.option(
    "--json", "-j", "json_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранить JSON-отчёт в файл",
)
@click.option(
    "--html", "-h", "html_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранить HTML-отчёт в файл",
)
@click.option(
    "--template", "-t", "template_dir",
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Папка с Jinja2-шаблонами (по умолчанию встроенный шаблон)",
)
@click.option("--pretty", is_flag=True, help="Преформатировать JSON-вывод (отступ 2)")
@click.option(
    "--scan-timeout", "scan_timeout",
    type=float,
    default=None,
    help="Таймаут всего прогона (секунд)",
)
@click.pass_context
def discover(ctx, domain, max_urls, max_depth, rate_limit_ms, no_robots, manual_urls,
             json_output, html_output, template_dir, pretty, scan_timeout):
    """Обнаружить URL домена и сгенерировать отчёты."""
    overrides = {}
    if max_urls is not None:
        overrides["max_urls"] = max_urls
    if max_depth is not None:
        overrides["max_depth"] = max_depth
    if rate_limit_ms is not None:
        overrides["rate_limit_delay_ms"] = rate_limit_ms
    if no_robots:
        overrides["respect_robots_txt"] = False
    try:
        cfg = ctx.obj["config"].with_overrides(**overrides)
    except ValidationError as e:
        print_error(f"Некорректные параметры: {e}")

    try:
        result = run_discovery(domain, cfg, scan_timeout=scan_timeout, manual_urls=manual_urls)
    except asyncio.TimeoutError:
        print_error(f"Обнаружение не завершено за {scan_timeout} секунд")
    except ValueError as e:
        print_error(f"Ошибка при обнаружении: {e}")

    # без файлов отчётов результат идёт в stdout
    if not json_output and not html_output:
        click.echo(result.json(pretty=pretty))
        return

    if json_output:
        try:
            saved_json = render_json(result, json_output, pretty=pretty)
            click.echo(f"JSON report: {saved_json}")
        except OSError as e:
            print_error(f"Ошибка при сохранении JSON: {e}")

    if html_output:
        try:
            saved_html = render_html(result, template_dir, html_output)
            click.echo(f"HTML report: {saved_html}")
        except Exception as e:
            print_error(f"Ошибка при сохранении HTML: {e}")


@cli.command("config", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj["config"]
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
