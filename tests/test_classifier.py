from __future__ import annotations

import pytest

from classroom.processing import MediaKind, artifact_extension, classify_file, is_accepted_upload
from classroom.processing.classifier import SUPPORTED_EXTENSIONS


@pytest.mark.parametrize(
    "file_name, expected",
    [
        ("lecture.mp4", MediaKind.VIDEO),
        ("lecture.AVI", MediaKind.VIDEO),
        ("recording.mkv", MediaKind.VIDEO),
        ("clip.Mov", MediaKind.VIDEO),
        ("notes.pdf", MediaKind.PDF),
        ("NOTES.PDF", MediaKind.PDF),
        ("essay.docx", MediaKind.DOCUMENT),
        ("essay.doc", MediaKind.DOCUMENT),
        ("slides.pptx", MediaKind.PRESENTATION),
        ("slides.ppt", MediaKind.PRESENTATION),
    ],
)
def test_extension_determines_kind(file_name: str, expected: MediaKind) -> None:
    assert classify_file(file_name, "application/octet-stream") is expected


def test_extension_wins_over_content_type() -> None:
    assert classify_file("lecture.pdf", "video/mp4") is MediaKind.PDF


@pytest.mark.parametrize(
    "content_type, expected",
    [
        ("video/webm", MediaKind.VIDEO),
        ("application/pdf", MediaKind.PDF),
        ("text/plain", MediaKind.OTHER),
        ("application/x-document", MediaKind.DOCUMENT),
        ("application/x-presentation", MediaKind.PRESENTATION),
    ],
)
def test_content_type_fallback(content_type: str, expected: MediaKind) -> None:
    assert classify_file("upload.bin", content_type) is expected


def test_openxml_presentation_type_matches_document_first() -> None:
    content_type = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

    assert classify_file("deck", content_type) is MediaKind.DOCUMENT


def test_unknown_upload_is_other() -> None:
    assert classify_file("archive.zip", "application/zip") is MediaKind.OTHER
    assert classify_file("README", None) is MediaKind.OTHER
    assert classify_file("", "") is MediaKind.OTHER
    assert not is_accepted_upload("archive.zip", "application/zip")


def test_accepts_supported_uploads() -> None:
    assert is_accepted_upload("lecture.mp4", None)
    assert is_accepted_upload("scan", "application/pdf")


def test_supported_extensions_cover_every_kind() -> None:
    assert SUPPORTED_EXTENSIONS == {
        ".mp4", ".avi", ".mkv", ".mov", ".pdf", ".docx", ".doc", ".pptx", ".ppt"
    }


@pytest.mark.parametrize(
    "file_name, kind, expected",
    [
        ("1-2-clip.mkv", MediaKind.VIDEO, ".mkv"),
        ("1-2-recording", MediaKind.VIDEO, ".mp4"),
        ("1-2-recording.bin", MediaKind.VIDEO, ".mp4"),
        ("1-2-scan", MediaKind.PDF, ""),
        ("1-2-essay.docx", MediaKind.DOCUMENT, ".docx"),
    ],
)
def test_artifact_extension(file_name: str, kind: MediaKind, expected: str) -> None:
    assert artifact_extension(file_name, kind) == expected
