"""Request-level pipeline turning a staged upload into a stored resource."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

from ..config import AppConfig
from ..processing import (
    CompressionDispatcher,
    CompressionOutcome,
    FFmpegVideoCompressor,
    FatalCompressionError,
    MediaKind,
    artifact_extension,
    classify_file,
)
from .events import emit_file_event
from .naming import build_compressed_name, safe_file_name
from .storage import ResourceRecord


LOGGER = logging.getLogger(__name__)

COMPRESSED_URL_PREFIX = "/uploads/compressed"


class IngestionError(RuntimeError):
    """Raised when an upload cannot be turned into a resource."""


class UploadValidationError(IngestionError):
    """Raised when the upload is missing its file or descriptive fields."""


class IngestionFatalError(IngestionError):
    """Raised when the artifact could not be written, measured or recorded."""


@dataclass
class UploadRequest:
    """A file already staged on disk plus the caller's descriptive fields."""

    original_name: str
    staged_path: Path
    subject: Optional[str]
    topic: Optional[str]
    content_type: Optional[str] = None
    size: Optional[int] = None


class ResourceStore(Protocol):
    """Metadata store receiving one record per successful upload."""

    def create_resource(
        self,
        *,
        file_name: str,
        file_type: str,
        subject: str,
        topic: str,
        compressed_url: str,
        original_size: int,
        compressed_size: int,
        upload_date: Optional[datetime] = None,
    ) -> ResourceRecord:
        """Persist a resource and return the stored record."""


def compression_ratio(original_size: int, compressed_size: int) -> float:
    """Return the size reduction in percent; negative when the file grew."""

    if original_size <= 0:
        return 0.0
    return (1 - compressed_size / original_size) * 100


def format_ratio(ratio: float) -> str:
    return f"{ratio:.2f}%"


@dataclass
class IngestionResult:
    resource_id: int
    compressed_url: str
    kind: MediaKind
    original_size: int
    compressed_size: int
    compression_ratio: float
    outcome: Optional[CompressionOutcome] = None

    @property
    def ratio_label(self) -> str:
        return format_ratio(self.compression_ratio)

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "file_id": self.resource_id,
            "compressed_url": self.compressed_url,
            "file_type": self.kind.value,
            "original_size": self.original_size,
            "compressed_size": self.compressed_size,
            "compression_ratio": self.ratio_label,
            "message": "File uploaded and compressed successfully",
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ResourceIngestor:
    """Coordinates classification, compression, measurement and recording of uploads."""

    def __init__(
        self,
        config: AppConfig,
        store: ResourceStore,
        *,
        dispatcher: Optional[CompressionDispatcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._dispatcher = dispatcher or CompressionDispatcher(
            video=FFmpegVideoCompressor(
                config.ffmpeg_path,
                timeout_seconds=config.video_timeout_seconds,
            )
        )
        self._clock = clock or _utc_now

    @property
    def dispatcher(self) -> CompressionDispatcher:
        return self._dispatcher

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def ingest(
        self,
        upload: Optional[UploadRequest],
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> IngestionResult:
        """Compress the staged file of *upload* and record it as a resource."""

        if upload is None or not upload.staged_path.is_file():
            LOGGER.warning("Upload failed: No file provided")
            raise UploadValidationError("No file uploaded")

        subject = (upload.subject or "").strip()
        topic = (upload.topic or "").strip()
        LOGGER.info(
            "File upload started: %s (subject=%s, topic=%s)",
            upload.original_name,
            subject or "<missing>",
            topic or "<missing>",
        )
        if not subject or not topic:
            LOGGER.warning("Upload failed: Missing subject or topic")
            self._discard_staged(upload.staged_path)
            raise UploadValidationError("Subject and topic are required")

        try:
            return self._process(upload, subject, topic, cancel_event)
        except Exception:
            self._discard_staged(upload.staged_path)
            raise

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _process(
        self,
        upload: UploadRequest,
        subject: str,
        topic: str,
        cancel_event: Optional[threading.Event],
    ) -> IngestionResult:
        staged_path = upload.staged_path
        original_size = upload.size if upload.size is not None else self._measure(staged_path)
        kind = classify_file(upload.original_name, upload.content_type)
        LOGGER.info(
            "File type detected: %s (size: %.2f MB)",
            kind.value,
            original_size / 1024 / 1024,
        )

        staged_name = safe_file_name(staged_path.name)
        compressed_name = build_compressed_name(
            staged_name, artifact_extension(staged_name, kind)
        )
        compressed_path = self._config.compressed_root / compressed_name
        compressed_url = f"{COMPRESSED_URL_PREFIX}/{compressed_name}"

        LOGGER.info("Starting compression for %s", kind.value)
        try:
            outcome = self._dispatcher.compress(
                staged_path, compressed_path, kind, cancel_event=cancel_event
            )
        except FatalCompressionError as error:
            LOGGER.error("Upload failed for %s: %s", upload.original_name, error)
            raise IngestionFatalError("Failed to store the uploaded file") from error

        compressed_size = self._measure(compressed_path)
        ratio = compression_ratio(original_size, compressed_size)
        LOGGER.info(
            "Compression ratio: %s (final size: %.2f MB)",
            format_ratio(ratio),
            compressed_size / 1024 / 1024,
        )

        self._delete_staged(staged_path)

        try:
            record = self._store.create_resource(
                file_name=upload.original_name,
                file_type=kind.value,
                subject=subject,
                topic=topic,
                compressed_url=compressed_url,
                original_size=original_size,
                compressed_size=compressed_size,
                upload_date=self._clock(),
            )
        except Exception as error:  # noqa: BLE001 - any store failure is fatal here
            LOGGER.error("Failed to record resource %s: %s", upload.original_name, error)
            raise IngestionFatalError("Failed to save the uploaded resource") from error

        LOGGER.info(
            "File uploaded successfully: %s (id=%s)", upload.original_name, record.id
        )
        return IngestionResult(
            resource_id=record.id,
            compressed_url=compressed_url,
            kind=kind,
            original_size=original_size,
            compressed_size=compressed_size,
            compression_ratio=ratio,
            outcome=outcome,
        )

    def _measure(self, path: Path) -> int:
        try:
            size = path.stat().st_size
        except OSError as error:
            emit_file_event(
                "measure_failed",
                payload={"path": path, "error": error},
                level=logging.ERROR,
            )
            raise IngestionFatalError("Unable to read the size of the uploaded file") from error
        emit_file_event("measure", payload={"path": path, "bytes": size}, level=logging.DEBUG)
        return size

    def _delete_staged(self, path: Path) -> None:
        start = time.perf_counter()
        try:
            path.unlink()
        except FileNotFoundError:
            LOGGER.debug("Staged upload %s already removed", path)
        except OSError as error:
            emit_file_event(
                "delete_staged_failed",
                payload={"path": path, "error": error},
                level=logging.ERROR,
            )
            raise IngestionFatalError("Unable to remove the temporary upload") from error
        emit_file_event(
            "delete_staged",
            payload={"path": path},
            duration_ms=(time.perf_counter() - start) * 1000.0,
            level=logging.DEBUG,
        )

    def _discard_staged(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as error:
            LOGGER.warning("Could not remove staged upload %s: %s", path, error)


__all__ = [
    "COMPRESSED_URL_PREFIX",
    "IngestionError",
    "IngestionFatalError",
    "IngestionResult",
    "ResourceIngestor",
    "ResourceStore",
    "UploadRequest",
    "UploadValidationError",
    "compression_ratio",
    "format_ratio",
]
