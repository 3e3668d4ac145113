from __future__ import annotations

import logging
from pathlib import Path

from advisor_harvester.logging_conf import (
    CONSOLE_HANDLER,
    LOGGER_NAME,
    build_logging_config,
    console_threshold,
    log_file,
    tail_log,
)


def test_logging_config_routes_levels(tmp_path: Path) -> None:
    config = build_logging_config(tmp_path)
    handlers = config["handlers"]
    assert handlers["console"]["level"] == "WARNING"
    assert handlers["run_file"]["filename"] == str(tmp_path / "harvester.log")
    assert handlers["error_file"]["level"] == "ERROR"
    assert config["loggers"][LOGGER_NAME]["level"] == "INFO"
    assert config["formatters"]["json"]["()"] == "pythonjsonlogger.json.JsonFormatter"


def test_verbose_logging_opens_console(tmp_path: Path) -> None:
    config = build_logging_config(tmp_path, verbose=True)
    assert config["handlers"]["console"]["level"] == "DEBUG"
    assert config["loggers"][LOGGER_NAME]["level"] == "DEBUG"


def test_tail_log_returns_last_lines(tmp_path: Path) -> None:
    path = log_file(tmp_path)
    path.write_text("".join(f"line {i}\n" for i in range(10)), encoding="utf-8")
    assert tail_log(path, 3) == ["line 7\n", "line 8\n", "line 9\n"]
    assert tail_log(path, 0) == []
    assert tail_log(log_file(tmp_path, errors=True)) == []


def test_console_threshold_mutes_warnings_during_live_display(tmp_path: Path) -> None:
    logger = logging.getLogger(LOGGER_NAME)
    console = logging.StreamHandler()
    console.set_name(CONSOLE_HANDLER)
    console.setLevel(logging.WARNING)
    run_file = logging.FileHandler(log_file(tmp_path), encoding="utf-8")
    run_file.setLevel(logging.INFO)
    logger.addHandler(console)
    logger.addHandler(run_file)
    try:
        with console_threshold():
            assert console.level == logging.ERROR
            assert run_file.level == logging.INFO
        assert console.level == logging.WARNING

        with console_threshold(active=False):
            assert console.level == logging.WARNING
    finally:
        logger.removeHandler(console)
        logger.removeHandler(run_file)
        run_file.close()
