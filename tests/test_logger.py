# File: tests/test_logger.py
import logging

from domain_scout.logger import LOGGER_NAME, configure, get_logger, init_logging, quiet_libraries


def test_component_logger_is_child_of_project_logger():
    assert get_logger("sitemap").name == f"{LOGGER_NAME}.sitemap"
    assert get_logger("sitemap").parent is logging.getLogger(LOGGER_NAME)


def test_console_output_goes_to_stderr(capsys):
    configure(level="INFO")
    get_logger("engine").info("hello from engine")
    captured = capsys.readouterr()
    assert "hello from engine" in captured.err
    assert captured.out == ""


def test_log_file_receives_records(tmp_path):
    log_file = tmp_path / "run.log"
    lg = configure(level="DEBUG", log_file=log_file)
    get_logger("dedup").debug("rejected https://example.org/x")
    for handler in lg.handlers:
        handler.flush()
    assert "rejected https://example.org/x" in log_file.read_text(encoding="utf-8")
    init_logging()


def test_replace_handlers():
    lg = configure(level="INFO")
    assert len(lg.handlers) == 1
    lg = configure(level="INFO", replace_handlers=False)
    assert len(lg.handlers) == 2
    configure(level="INFO")


def test_quiet_libraries():
    quiet_libraries(["aiohttp.client"], level=logging.ERROR)
    assert logging.getLogger("aiohttp.client").level == logging.ERROR
    quiet_libraries()
    assert logging.getLogger("aiohttp.client").level == logging.WARNING
