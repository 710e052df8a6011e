"""Shared types for the compression adapters."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol


class CompressionError(RuntimeError):
    """Raised when an adapter cannot produce its output."""


class CompressionDependencyError(CompressionError):
    """Raised when an adapter cannot operate due to a missing dependency."""


class CompressionTimeoutError(CompressionError):
    """Raised when the external encoder exceeds its time budget."""


class CompressionCancelledError(CompressionError):
    """Raised when a running compression is cancelled by the caller."""


class FatalCompressionError(RuntimeError):
    """Raised when even the passthrough fallback could not write the artifact."""


class Compressor(Protocol):
    """Protocol implemented by every compression adapter."""

    name: str

    def compress(
        self,
        source: Path,
        output: Path,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """Write the compressed form of *source* to *output*.

        Adapters that run long may stop early once *cancel_event* is set.
        """


@dataclass
class CompressionOutcome:
    """Result of one dispatcher run."""

    output_path: Path
    output_size: int
    success: bool
    strategy: str
    fallback_used: bool = False
    error: Optional[str] = None


__all__ = [
    "CompressionCancelledError",
    "CompressionDependencyError",
    "CompressionError",
    "CompressionOutcome",
    "CompressionTimeoutError",
    "Compressor",
    "FatalCompressionError",
]
