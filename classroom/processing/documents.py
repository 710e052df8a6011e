"""PDF optimisation by stripping descriptive metadata."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Optional

from .base import CompressionDependencyError, CompressionError


LOGGER = logging.getLogger(__name__)

# PyMuPDF drops Info entries whose value is empty.
CLEARED_METADATA: Dict[str, str] = {
    "title": "",
    "author": "",
    "subject": "",
    "keywords": "",
    "producer": "",
    "creator": "",
}


class PdfMetadataOptimizer:
    """Re-save a PDF with its title/author/subject/keywords/producer/creator cleared.

    Content streams are left untouched; the size reduction comes from the
    removed metadata only.
    """

    name = "pdf"

    def compress(
        self,
        source: Path,
        output: Path,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        try:
            import fitz  # type: ignore
        except ImportError as exc:  # pragma: no cover - runtime check
            raise CompressionDependencyError("PyMuPDF (fitz) is not installed") from exc

        document = None
        try:
            try:
                document = fitz.open(source, filetype="pdf")
            except Exception as error:  # noqa: BLE001 - PyMuPDF raises several types
                raise CompressionError(f"Unable to read PDF document: {error}") from error
            if not document.is_pdf or document.page_count < 1:
                raise CompressionError("Uploaded file is not a valid PDF document")
            if document.needs_pass:
                raise CompressionError("Encrypted PDF documents cannot be optimised")

            document.set_metadata(dict(CLEARED_METADATA))
            output.parent.mkdir(parents=True, exist_ok=True)
            document.save(output, garbage=0, deflate=False, use_objstms=0)
        except CompressionError:
            LOGGER.error("PDF compression error for %s", source.name)
            output.unlink(missing_ok=True)
            raise
        except Exception as error:  # noqa: BLE001 - surface as adapter failure
            LOGGER.error("PDF compression error for %s: %s", source.name, error)
            output.unlink(missing_ok=True)
            raise CompressionError(f"Unable to optimise PDF document: {error}") from error
        finally:
            if document is not None:
                document.close()

        LOGGER.info("PDF compressed: %s", output.name)


__all__ = ["CLEARED_METADATA", "PdfMetadataOptimizer"]
