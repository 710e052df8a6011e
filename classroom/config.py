"""Configuration loading utilities for the Rural Classroom backend."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple


LOGGER = logging.getLogger(__name__)


_PERMISSION_SENTINEL = ".rural_classroom_write_check"

DEFAULT_MAX_UPLOAD_BYTES = 500 * 1024 * 1024
MAX_UPLOAD_ENV_VAR = "CLASSROOM_MAX_UPLOAD_BYTES"


def _ensure_writable_directory(path: Path) -> bool:
    """Return ``True`` if *path* can be created and written to."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False

    test_file = path / _PERMISSION_SENTINEL
    try:
        with test_file.open("w", encoding="utf-8") as handle:
            handle.write("ok")
    except OSError:
        return False
    finally:
        with contextlib.suppress(OSError):
            test_file.unlink()

    return True


def _select_writable_directory(
    preferred: Path,
    *,
    label: str,
    fallbacks: Iterable[Path] = (),
) -> Tuple[Path, bool]:
    """Return a usable directory based on ``preferred`` and ``fallbacks``.

    The first writable candidate wins and the flag reports whether a fallback
    was used. When nothing can be prepared ``preferred`` is returned so that the
    bootstrap step can report the problem.
    """

    preferred = preferred.resolve()
    if _ensure_writable_directory(preferred):
        return preferred, False

    for fallback in fallbacks:
        candidate = fallback.resolve()
        if candidate == preferred:
            continue
        if _ensure_writable_directory(candidate):
            LOGGER.warning(
                "Preferred %s directory '%s' is not writable; using fallback '%s'.",
                label,
                preferred,
                candidate,
            )
            return candidate, True

    LOGGER.warning(
        "%s directory '%s' is not writable and no fallback is available.",
        label.capitalize(),
        preferred,
    )
    return preferred, False


def _coerce_optional_float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    timeout = float(value)
    return timeout if timeout > 0 else None


def _resolve_max_upload_bytes(value: Any) -> int:
    raw_override = (os.environ.get(MAX_UPLOAD_ENV_VAR) or "").strip()
    if raw_override:
        try:
            return int(raw_override)
        except ValueError:
            LOGGER.warning(
                "Ignoring invalid %s value %r; using configured limit.",
                MAX_UPLOAD_ENV_VAR,
                raw_override,
            )
    if value in (None, ""):
        return DEFAULT_MAX_UPLOAD_BYTES
    return int(value)


@dataclass(frozen=True)
class AppConfig:
    """Runtime paths and pipeline limits for the application."""

    storage_root: Path
    database_file: Path
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    video_timeout_seconds: Optional[float] = None
    ffmpeg_path: Optional[str] = None

    @property
    def staging_root(self) -> Path:
        """Directory receiving raw uploads before compression."""

        return self.storage_root

    @property
    def compressed_root(self) -> Path:
        """Directory holding the compressed artifacts served to students."""

        return (self.storage_root / "compressed").resolve()

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any], *, base_path: Path) -> "AppConfig":
        preferred_storage = (base_path / mapping["storage_root"]).resolve()
        storage_fallback = Path.home() / ".rural_classroom" / "uploads"
        storage_root, _ = _select_writable_directory(
            preferred_storage,
            label="upload",
            fallbacks=(storage_fallback,),
        )

        database_file = (base_path / mapping["database_file"]).resolve()
        if not _ensure_writable_directory(database_file.parent):
            fallback_database = (
                Path.home() / ".rural_classroom" / "data" / database_file.name
            ).resolve()
            if _ensure_writable_directory(fallback_database.parent):
                LOGGER.warning(
                    "Preferred database location '%s' is not writable; using fallback '%s'.",
                    database_file,
                    fallback_database,
                )
                database_file = fallback_database
            else:
                LOGGER.warning(
                    "Database location '%s' is not writable and no fallback is available.",
                    database_file,
                )

        ffmpeg_path = mapping.get("ffmpeg_path") or None

        return cls(
            storage_root=storage_root,
            database_file=database_file,
            max_upload_bytes=_resolve_max_upload_bytes(mapping.get("max_upload_bytes")),
            video_timeout_seconds=_coerce_optional_float(mapping.get("video_timeout_seconds")),
            ffmpeg_path=str(ffmpeg_path) if ffmpeg_path else None,
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the application configuration from ``config/default.json`` by default."""

    base_path = Path(__file__).resolve().parent.parent
    if config_path is None:
        config_path = base_path / "config" / "default.json"

    with config_path.open("r", encoding="utf-8") as config_file:
        raw_config = json.load(config_file)

    return AppConfig.from_mapping(raw_config, base_path=base_path)


__all__ = ["AppConfig", "DEFAULT_MAX_UPLOAD_BYTES", "load_config"]
