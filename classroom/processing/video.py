"""FFmpeg-backed video transcoding with a single fixed 480p profile."""

from __future__ import annotations

import logging
import shutil
import subprocess
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

from .base import (
    CompressionCancelledError,
    CompressionDependencyError,
    CompressionError,
    CompressionTimeoutError,
)


LOGGER = logging.getLogger(__name__)

# Rescale to 480 px height keeping the aspect ratio (width rounded to even),
# H.264 at CRF 28, AAC 96 kbps, moov atom moved up front for progressive playback.
VIDEO_OUTPUT_OPTIONS: Tuple[str, ...] = (
    "-vf",
    "scale=-2:480",
    "-c:v",
    "libx264",
    "-crf",
    "28",
    "-preset",
    "fast",
    "-c:a",
    "aac",
    "-b:a",
    "96k",
    "-movflags",
    "+faststart",
)

_TERMINATE_GRACE_SECONDS = 5.0


def ffmpeg_available(ffmpeg_path: Optional[str] = None) -> bool:
    """Return ``True`` when an FFmpeg binary can be located."""

    return shutil.which(ffmpeg_path or "ffmpeg") is not None


class FFmpegVideoCompressor:
    """Transcode videos by running FFmpeg as a child process.

    The call blocks until FFmpeg exits. ``timeout_seconds`` bounds the run and a
    ``threading.Event`` passed as ``cancel_event`` stops it early; in both cases
    the child is terminated and its partial output removed.
    """

    name = "video"

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        *,
        timeout_seconds: Optional[float] = None,
        poll_interval: float = 0.5,
    ) -> None:
        self._ffmpeg_path = ffmpeg_path
        self._timeout_seconds = timeout_seconds
        self._poll_interval = max(0.01, float(poll_interval))

    def resolve_binary(self) -> str:
        resolved = shutil.which(self._ffmpeg_path or "ffmpeg")
        if resolved is None:
            raise CompressionDependencyError(
                "FFmpeg is required to compress videos but was not found."
            )
        return resolved

    @staticmethod
    def build_command(ffmpeg: str, source: Path, output: Path) -> List[str]:
        return [
            ffmpeg,
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-i",
            str(source),
            *VIDEO_OUTPUT_OPTIONS,
            str(output),
        ]

    def compress(
        self,
        source: Path,
        output: Path,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        ffmpeg = self.resolve_binary()
        command = self.build_command(ffmpeg, source, output)
        output.parent.mkdir(parents=True, exist_ok=True)

        LOGGER.debug("Executing FFmpeg command: %s", " ".join(command))
        start = time.monotonic()
        deadline = start + self._timeout_seconds if self._timeout_seconds else None
        try:
            process = subprocess.Popen(
                command, stdout=subprocess.PIPE, stderr=subprocess.PIPE
            )
        except OSError as error:
            raise CompressionDependencyError(f"Unable to start FFmpeg: {error}") from error

        while True:
            try:
                stdout, stderr = process.communicate(timeout=self._poll_interval)
                break
            except subprocess.TimeoutExpired:
                if cancel_event is not None and cancel_event.is_set():
                    self._abort(process, output)
                    raise CompressionCancelledError("Video compression was cancelled")
                if deadline is not None and time.monotonic() >= deadline:
                    self._abort(process, output)
                    raise CompressionTimeoutError(
                        f"Video compression exceeded {self._timeout_seconds:g} seconds"
                    )

        if process.returncode != 0:
            output.unlink(missing_ok=True)
            stderr_text = (stderr or b"").decode("utf-8", errors="ignore").strip()
            stdout_text = (stdout or b"").decode("utf-8", errors="ignore").strip()
            details = (stderr_text or stdout_text or "FFmpeg exited with a non-zero status.").splitlines()
            LOGGER.error(
                "Video compression error (code=%s): %s",
                process.returncode,
                details[0] if details else "unknown",
            )
            raise CompressionError(
                f"Unable to compress video: {details[0] if details else 'Unknown error.'}"
            )

        LOGGER.info(
            "Video compressed: %s (%.1fs)", output.name, time.monotonic() - start
        )

    def _abort(self, process: subprocess.Popen, output: Path) -> None:
        LOGGER.warning("Stopping FFmpeg process %s", getattr(process, "pid", "?"))
        process.terminate()
        try:
            process.communicate(timeout=_TERMINATE_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
        output.unlink(missing_ok=True)


__all__ = ["FFmpegVideoCompressor", "VIDEO_OUTPUT_OPTIONS", "ffmpeg_available"]
