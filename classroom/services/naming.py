"""Helpers for unique upload names and staging of incoming files."""

from __future__ import annotations

import contextlib
import logging
import random
import re
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Optional

__all__ = [
    "COMPRESSED_MARKER",
    "UploadTooLargeError",
    "build_compressed_name",
    "build_staged_name",
    "safe_file_name",
    "stage_upload",
]


LOGGER = logging.getLogger(__name__)

COMPRESSED_MARKER = "-compressed"
_DEFAULT_CHUNK_SIZE = 1024 * 1024


class UploadTooLargeError(RuntimeError):
    """Raised when an incoming upload exceeds the configured byte limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"File exceeds the maximum upload size of {limit} bytes")
        self.limit = limit


def safe_file_name(original_name: str) -> str:
    """Strip directories from *original_name* and replace unsafe characters.

    The extension is kept (lower-cased, reduced to letters, digits and ``_``)
    so classification still works on the staged copy and the artifact name
    stays usable as a URL path segment.
    """

    name = Path(original_name.replace("\\", "/")).name
    suffix = Path(name).suffix
    stem = name[: -len(suffix)] if suffix else name
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", stem).strip("._") or "upload"
    extension = re.sub(r"[^a-z0-9]+", "_", suffix[1:].lower()).strip("_")
    return f"{cleaned}.{extension}" if extension else cleaned


def build_staged_name(
    original_name: str,
    *,
    timestamp_ms: Optional[int] = None,
    nonce: Optional[int] = None,
) -> str:
    """Return ``<epoch-ms>-<random>-<original name>`` for a staged upload."""

    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    suffix = nonce if nonce is not None else random.randint(0, 10**9)
    return f"{stamp}-{suffix}-{safe_file_name(original_name)}"


def build_compressed_name(staged_name: str, extension: str) -> str:
    """Return the artifact name for *staged_name* keeping *extension*."""

    ext = extension.lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    stem = staged_name
    if ext and stem.lower().endswith(ext):
        stem = stem[: -len(ext)]
    return f"{stem}{COMPRESSED_MARKER}{ext}"


def stage_upload(
    source: BinaryIO,
    staging_dir: Path,
    original_name: str,
    *,
    max_bytes: int = 0,
    chunk_size: int = _DEFAULT_CHUNK_SIZE,
) -> Path:
    """Copy *source* into *staging_dir* under a unique name and return the path.

    When ``max_bytes`` is positive and the stream is larger, the partial file is
    removed and :class:`UploadTooLargeError` is raised.
    """

    staging_dir.mkdir(parents=True, exist_ok=True)
    target = staging_dir / build_staged_name(original_name)
    if hasattr(source, "seek"):
        with contextlib.suppress(OSError, ValueError):
            source.seek(0)

    written = 0
    try:
        with target.open("wb") as buffer:
            if max_bytes <= 0:
                shutil.copyfileobj(source, buffer, length=chunk_size)
            else:
                while True:
                    chunk = source.read(chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > max_bytes:
                        raise UploadTooLargeError(max_bytes)
                    buffer.write(chunk)
    except BaseException:
        target.unlink(missing_ok=True)
        raise

    LOGGER.debug("Staged upload '%s' at %s", original_name, target)
    return target
