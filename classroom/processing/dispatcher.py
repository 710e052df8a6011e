"""Route a classified upload to its compressor and fall back to a plain copy."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Dict, Optional

from ..services.events import emit_compression_event
from .base import (
    CompressionError,
    CompressionOutcome,
    Compressor,
    FatalCompressionError,
)
from .classifier import MediaKind
from .documents import PdfMetadataOptimizer
from .passthrough import PassthroughCopier
from .video import FFmpegVideoCompressor


LOGGER = logging.getLogger(__name__)


class CompressionDispatcher:
    """Select the adapter for a :class:`MediaKind` and guarantee an output file.

    Videos go to the FFmpeg adapter, PDFs to the metadata optimiser and every
    other kind straight to the passthrough copier. When the selected adapter
    fails the source is copied instead; only a failing copy is fatal.
    """

    def __init__(
        self,
        *,
        video: Optional[Compressor] = None,
        pdf: Optional[Compressor] = None,
        passthrough: Optional[Compressor] = None,
    ) -> None:
        self._passthrough = passthrough or PassthroughCopier()
        self._strategies: Dict[MediaKind, Compressor] = {
            MediaKind.VIDEO: video or FFmpegVideoCompressor(),
            MediaKind.PDF: pdf or PdfMetadataOptimizer(),
        }

    def select(self, kind: MediaKind) -> Compressor:
        return self._strategies.get(kind, self._passthrough)

    def compress(
        self,
        source: Path,
        output: Path,
        kind: MediaKind,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> CompressionOutcome:
        compressor = self.select(kind)
        strategy = getattr(compressor, "name", compressor.__class__.__name__)
        emit_compression_event(
            "started",
            payload={"kind": kind, "strategy": strategy, "source": source},
        )
        start = time.perf_counter()
        error_text: Optional[str] = None
        try:
            compressor.compress(source, output, cancel_event=cancel_event)
        except (CompressionError, OSError) as error:
            if compressor is self._passthrough:
                emit_compression_event(
                    "copy_failed",
                    payload={"kind": kind, "error": error},
                    level=logging.ERROR,
                )
                raise FatalCompressionError("Unable to store the uploaded file") from error
            error_text = str(error) or error.__class__.__name__
            LOGGER.error(
                "Compression failed for %s (%s); copying original file: %s",
                source.name,
                strategy,
                error_text,
            )
        else:
            if not output.exists():
                error_text = f"{strategy} adapter produced no output"
                LOGGER.error("Compression of %s produced no output; copying original", source.name)

        if error_text is None:
            outcome = CompressionOutcome(
                output_path=output,
                output_size=output.stat().st_size,
                success=True,
                strategy=strategy,
            )
            emit_compression_event(
                "completed",
                payload={"kind": kind, "strategy": strategy, "bytes": outcome.output_size},
                duration_ms=(time.perf_counter() - start) * 1000.0,
            )
            return outcome

        try:
            self._passthrough.compress(source, output)
            output_size = output.stat().st_size
        except (CompressionError, OSError) as error:
            emit_compression_event(
                "fallback_failed",
                payload={"kind": kind, "strategy": strategy, "error": error},
                level=logging.ERROR,
            )
            raise FatalCompressionError(
                "Unable to store the uploaded file after compression failed"
            ) from error

        emit_compression_event(
            "fallback",
            payload={"kind": kind, "strategy": strategy, "error": error_text, "bytes": output_size},
            duration_ms=(time.perf_counter() - start) * 1000.0,
            level=logging.WARNING,
        )
        return CompressionOutcome(
            output_path=output,
            output_size=output_size,
            success=False,
            strategy=getattr(self._passthrough, "name", "passthrough"),
            fallback_used=True,
            error=error_text,
        )


__all__ = ["CompressionDispatcher"]
