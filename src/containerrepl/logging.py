"""Logging for container-repl: stderr at the chosen level, a capped DEBUG log file."""

from __future__ import annotations

import logging as py_logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TextIO

LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "WARNING": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
LOGGER_NAME = "containerrepl"
LEVEL_ENV = "CONTAINER_REPL_LOG_LEVEL"
DEFAULT_LEVEL = "WARN"
DEFAULT_LOG_PATH = Path("~/.config/container-repl/logs/container-repl.log")
_CWD_LOG_PATH = Path(".container-repl/logs/container-repl.log")
# Every command is a short process appending to the same file.
LOG_MAX_BYTES = 512 * 1024
LOG_BACKUPS = 2
_CONSOLE_FORMAT = "container-repl: %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(process)d %(levelname)s %(name)s:%(lineno)d %(message)s"


def default_log_path() -> Path:
    try:
        return DEFAULT_LOG_PATH.expanduser()
    except RuntimeError:
        # No resolvable home directory.
        return (Path.cwd() / _CWD_LOG_PATH).resolve()


def resolve_level(level: str | None = None) -> int:
    """Map a level name to a logging level; ``None`` reads CONTAINER_REPL_LOG_LEVEL."""
    name = level if level is not None else os.getenv(LEVEL_ENV, DEFAULT_LEVEL)
    return LOG_LEVELS.get(name.strip().upper(), py_logging.INFO)


def _file_handler(log_file: str | Path) -> py_logging.Handler | None:
    log_path = Path(log_file).expanduser().resolve()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUPS,
            encoding="utf-8",
        )
    except OSError:
        return None
    handler.setLevel(py_logging.DEBUG)
    handler.setFormatter(py_logging.Formatter(_FILE_FORMAT))
    return handler


def configure_logging(
    level: str | None = None,
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    resolved = resolve_level(level)

    logger = py_logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    console = py_logging.StreamHandler(stream or sys.stderr)
    console.setLevel(resolved)
    console.setFormatter(py_logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    file_handler = _file_handler(log_file) if log_file else None
    if file_handler is not None:
        logger.setLevel(py_logging.DEBUG)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
