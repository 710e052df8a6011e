"""Bootstrap logic that prepares upload directories and the SQLite database."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from . import config as config_module
from .config import AppConfig, load_config

LOGGER = logging.getLogger(__name__)


class BootstrapError(RuntimeError):
    """Raised when initialization cannot be completed."""


class Bootstrapper:
    """High level object orchestrating initialization steps."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    @property
    def config(self) -> AppConfig:
        return self._config

    def initialize(self) -> None:
        """Run all bootstrap tasks."""

        LOGGER.debug("Starting bootstrap sequence")
        self._ensure_directories()
        self._ensure_database()
        LOGGER.info("Bootstrap completed successfully")

    def _ensure_directories(self) -> None:
        directories = (
            ("upload", self._config.staging_root),
            ("compressed", self._config.compressed_root),
            ("database", self._config.database_file.parent),
        )
        for label, path in directories:
            existed = path.exists()
            if not config_module._ensure_writable_directory(path):
                raise BootstrapError(
                    f"Unable to prepare {label} directory '{path}'. It is not writable. "
                    "Update config/default.json or adjust permissions."
                )
            if existed:
                LOGGER.info("Directory exists: %s", path)
            else:
                LOGGER.info("Directory created: %s", path)

    def _ensure_database(self) -> None:
        LOGGER.debug("Ensuring database schema at %s", self._config.database_file)
        try:
            connection = sqlite3.connect(self._config.database_file)
        except sqlite3.Error as error:
            raise BootstrapError(
                f"Unable to open database '{self._config.database_file}': {error}"
            ) from error
        try:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS resources (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    file_name TEXT NOT NULL,
                    file_type TEXT NOT NULL,
                    subject TEXT NOT NULL,
                    topic TEXT NOT NULL,
                    upload_date TEXT NOT NULL,
                    compressed_url TEXT NOT NULL,
                    original_size INTEGER,
                    compressed_size INTEGER
                );

                CREATE INDEX IF NOT EXISTS idx_resources_subject
                    ON resources(subject, upload_date);

                CREATE TABLE IF NOT EXISTS live_classes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    subject TEXT NOT NULL,
                    topic TEXT NOT NULL,
                    join_link TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active'
                );
                """
            )
            connection.commit()
        finally:
            connection.close()
        LOGGER.info("Database ready at %s", self._config.database_file)


def initialize_app(config_path: Path | None = None) -> AppConfig:
    """Convenience helper that loads configuration and runs initialization."""

    config = load_config(config_path=config_path)
    Bootstrapper(config).initialize()
    return config


__all__ = ["BootstrapError", "Bootstrapper", "initialize_app"]
