"""Byte-for-byte copy used for office formats and as the universal fallback."""

from __future__ import annotations

import logging
import shutil
import threading
from pathlib import Path
from typing import Optional

from .base import CompressionError


LOGGER = logging.getLogger(__name__)


class PassthroughCopier:
    """Copy the source unchanged to the output path."""

    name = "passthrough"

    def compress(
        self,
        source: Path,
        output: Path,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, output)
        except OSError as error:
            LOGGER.error("File copy from %s to %s failed: %s", source, output, error)
            raise CompressionError(f"Unable to copy file: {error.strerror or error}") from error
        LOGGER.info("File copied: %s", output.name)


__all__ = ["PassthroughCopier"]
