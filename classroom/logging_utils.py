"""Centralized logging configuration for the Rural Classroom backend."""

from __future__ import annotations

import logging
from logging import Logger
from pathlib import Path
from typing import Iterable, List


DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_NAME = "rural_classroom.log"


def configure_logging(level: int = logging.INFO, *, handlers: Iterable[logging.Handler] | None = None) -> Logger:
    """Attach *handlers* (or a plain stderr handler) to the root logger."""

    logger = logging.getLogger()
    logger.setLevel(level)

    installed = list(handlers) if handlers is not None else [logging.StreamHandler()]
    for handler in installed:
        if handler.formatter is None:
            handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        logger.addHandler(handler)

    return logger


def get_log_file_path(storage_root: Path) -> Path:
    """Return the server log file location inside the upload directory."""

    return storage_root / LOG_FILE_NAME


def build_server_handlers(storage_root: Path) -> List[logging.Handler]:
    """Return the file + console handler pair used by the CLI commands."""

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    file_handler = logging.FileHandler(get_log_file_path(storage_root), encoding="utf-8")
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    return [file_handler, stream_handler]


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "LOG_FILE_NAME",
    "build_server_handlers",
    "configure_logging",
    "get_log_file_path",
]
