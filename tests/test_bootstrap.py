import sqlite3
from pathlib import Path

import pytest

import classroom.config as config_module
from classroom.bootstrap import BootstrapError, Bootstrapper
from classroom.config import AppConfig


def test_bootstrapper_creates_directories_and_schema(tmp_path: Path) -> None:
    config = AppConfig(
        storage_root=tmp_path / "uploads",
        database_file=tmp_path / "data" / "classroom.db",
    )

    Bootstrapper(config).initialize()
    Bootstrapper(config).initialize()

    assert config.staging_root.is_dir()
    assert config.compressed_root.is_dir()
    with sqlite3.connect(config.database_file) as connection:
        tables = {
            row[0]
            for row in connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
    assert {"resources", "live_classes"} <= tables


def test_bootstrapper_raises_when_upload_directory_unwritable(
    tmp_path: Path, monkeypatch
) -> None:
    storage_root = tmp_path / "uploads"
    config = AppConfig(
        storage_root=storage_root,
        database_file=tmp_path / "data" / "classroom.db",
    )

    original_ensure = config_module._ensure_writable_directory

    def fake_ensure(path: Path) -> bool:
        if path.resolve() == storage_root.resolve():
            return False
        return original_ensure(path)

    monkeypatch.setattr(config_module, "_ensure_writable_directory", fake_ensure)

    with pytest.raises(BootstrapError) as excinfo:
        Bootstrapper(config).initialize()

    assert "upload" in str(excinfo.value).lower()
