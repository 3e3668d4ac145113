"""structlog on top of stdlib handlers writing JSON lines."""

from __future__ import annotations

import logging
import logging.config
from collections import deque
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import structlog

LOGGER_NAME = "advisor_harvester"
RUN_LOG = "harvester.log"
ERROR_LOG = "error.log"

CONSOLE_HANDLER = "console"

_configured = False


def log_file(log_dir: Path, errors: bool = False) -> Path:
    return log_dir / (ERROR_LOG if errors else RUN_LOG)


def build_logging_config(log_dir: Path, verbose: bool = False) -> dict[str, Any]:
    """Return the ``dictConfig`` payload for the package logger.

    The console only shows warnings unless ``verbose``; the progress bar owns
    stdout during a run. Every INFO event lands in ``harvester.log`` and
    errors are duplicated into ``error.log``.
    """

    level = "DEBUG" if verbose else "INFO"

    def file_handler(path: Path, handler_level: str) -> dict[str, Any]:
        return {
            "class": "logging.FileHandler",
            "level": handler_level,
            "filename": str(path),
            "formatter": "json",
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": {
            CONSOLE_HANDLER: {
                "class": "logging.StreamHandler",
                "level": level if verbose else "WARNING",
                "formatter": "json",
            },
            "run_file": file_handler(log_file(log_dir), "INFO"),
            "error_file": file_handler(log_file(log_dir, errors=True), "ERROR"),
        },
        "loggers": {
            LOGGER_NAME: {
                "handlers": [CONSOLE_HANDLER, "run_file", "error_file"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Install handlers once per process and return the package logger."""

    global _configured
    log_dir = log_dir or Path.cwd() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    for path in (log_file(log_dir), log_file(log_dir, errors=True)):
        path.touch(exist_ok=True)

    if not _configured:
        logging.config.dictConfig(build_logging_config(log_dir, verbose))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _configured = True
    return structlog.get_logger(LOGGER_NAME)


@contextmanager
def console_threshold(level: int = logging.ERROR, active: bool = True) -> Iterator[None]:
    """Raise the console handler to ``level`` while a live display owns the terminal.

    File handlers are untouched; previous levels are restored on exit.
    """

    handlers = []
    if active:
        handlers = [
            handler
            for handler in logging.getLogger(LOGGER_NAME).handlers
            if handler.get_name() == CONSOLE_HANDLER
        ]
    previous = [handler.level for handler in handlers]
    for handler in handlers:
        handler.setLevel(max(handler.level, level))
    try:
        yield
    finally:
        for handler, old_level in zip(handlers, previous):
            handler.setLevel(old_level)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists() or line_count <= 0:
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return list(deque(stream, maxlen=line_count))


__all__ = [
    "CONSOLE_HANDLER",
    "ERROR_LOG",
    "LOGGER_NAME",
    "RUN_LOG",
    "build_logging_config",
    "configure_logging",
    "console_threshold",
    "log_file",
    "tail_log",
]
