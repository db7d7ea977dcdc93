# domain_scout/report/json_report.py

"""
Генерация JSON-отчёта для проекта DomainScout.

Сериализация объекта DiscoveryRunResult в файл.
"""
from pathlib import Path

from domain_scout.aggregator import DiscoveryRunResult


def render_json(result: DiscoveryRunResult, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет результат прогона в формате JSON по указанному пути.

    :param result: объект DiscoveryRunResult
    :param output_path: путь к JSON-файлу
    :param pretty: отступ 2 пробела
    :return: Path сохранённого файла

    Пример:
    ```python
    from domain_scout.report.json_report import render_json
    report_path = render_json(result, 'reports/discovery.json')
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(result.json(pretty=pretty), encoding="utf-8")
    return output
