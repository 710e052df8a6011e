"""Map uploaded file names and content types onto media kinds."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath
from typing import Dict, FrozenSet, Optional, Tuple


class MediaKind(str, Enum):
    VIDEO = "video"
    PDF = "pdf"
    DOCUMENT = "document"
    PRESENTATION = "presentation"
    OTHER = "other"


_EXTENSION_KINDS: Dict[MediaKind, FrozenSet[str]] = {
    MediaKind.VIDEO: frozenset({".mp4", ".avi", ".mkv", ".mov"}),
    MediaKind.PDF: frozenset({".pdf"}),
    MediaKind.DOCUMENT: frozenset({".docx", ".doc"}),
    MediaKind.PRESENTATION: frozenset({".pptx", ".ppt"}),
}

# Checked in order; the first substring found in the content type wins.
_CONTENT_TYPE_HINTS: Tuple[Tuple[str, MediaKind], ...] = (
    ("video", MediaKind.VIDEO),
    ("pdf", MediaKind.PDF),
    ("document", MediaKind.DOCUMENT),
    ("presentation", MediaKind.PRESENTATION),
)

SUPPORTED_EXTENSIONS: FrozenSet[str] = frozenset().union(*_EXTENSION_KINDS.values())

# FFmpeg picks its output muxer from the suffix.
_DEFAULT_VIDEO_EXTENSION = ".mp4"


def file_extension(file_name: str) -> str:
    """Return the lower-cased extension of *file_name* including the dot."""

    return PurePath(file_name.replace("\\", "/")).suffix.lower()


def classify_file(file_name: str, content_type: Optional[str] = None) -> MediaKind:
    """Return the :class:`MediaKind` for an upload.

    The extension is the primary signal. When it is not recognised the declared
    content type is searched for a matching substring, which accepts loosely
    labelled uploads such as ``application/x-video``. Anything else is
    ``other``.
    """

    extension = file_extension(file_name or "")
    for kind, extensions in _EXTENSION_KINDS.items():
        if extension in extensions:
            return kind

    declared = (content_type or "").lower()
    if declared:
        for needle, kind in _CONTENT_TYPE_HINTS:
            if needle in declared:
                return kind

    return MediaKind.OTHER


def artifact_extension(file_name: str, kind: MediaKind) -> str:
    """Return the extension the compressed artifact of *file_name* should carry.

    The upload's own extension is kept, except for videos classified through
    their content type, which get ``.mp4`` so the encoder can write them.
    """

    extension = file_extension(file_name)
    if kind is MediaKind.VIDEO and extension not in _EXTENSION_KINDS[MediaKind.VIDEO]:
        return _DEFAULT_VIDEO_EXTENSION
    return extension


def is_accepted_upload(file_name: str, content_type: Optional[str] = None) -> bool:
    """Return ``True`` when the upload maps to one of the supported kinds."""

    return classify_file(file_name, content_type) is not MediaKind.OTHER


__all__ = [
    "MediaKind",
    "SUPPORTED_EXTENSIONS",
    "artifact_extension",
    "classify_file",
    "file_extension",
    "is_accepted_upload",
]
