"""Compression backends for uploaded classroom resources."""

from .base import (
    CompressionCancelledError,
    CompressionDependencyError,
    CompressionError,
    CompressionOutcome,
    CompressionTimeoutError,
    Compressor,
    FatalCompressionError,
)
from .classifier import (
    MediaKind,
    artifact_extension,
    classify_file,
    file_extension,
    is_accepted_upload,
)
from .dispatcher import CompressionDispatcher
from .documents import PdfMetadataOptimizer
from .passthrough import PassthroughCopier
from .video import FFmpegVideoCompressor, ffmpeg_available

__all__ = [
    "CompressionCancelledError",
    "CompressionDependencyError",
    "CompressionDispatcher",
    "CompressionError",
    "CompressionOutcome",
    "CompressionTimeoutError",
    "Compressor",
    "FFmpegVideoCompressor",
    "FatalCompressionError",
    "MediaKind",
    "PassthroughCopier",
    "PdfMetadataOptimizer",
    "artifact_extension",
    "classify_file",
    "ffmpeg_available",
    "file_extension",
    "is_accepted_upload",
]
