from __future__ import annotations

from pathlib import Path

import pytest

from classroom.processing import CompressionError, PassthroughCopier


def test_copy_is_byte_identical_and_idempotent(tmp_path: Path) -> None:
    source = tmp_path / "essay.docx"
    source.write_bytes(bytes(range(256)) * 64)
    output = tmp_path / "compressed" / "essay-compressed.docx"
    copier = PassthroughCopier()

    copier.compress(source, output)
    first = output.read_bytes()
    copier.compress(source, output)
    second = output.read_bytes()

    assert first == source.read_bytes()
    assert second == first


def test_copy_creates_missing_destination_directory(tmp_path: Path) -> None:
    source = tmp_path / "slides.pptx"
    source.write_bytes(b"pptx")
    output = tmp_path / "a" / "b" / "slides-compressed.pptx"

    PassthroughCopier().compress(source, output)

    assert output.read_bytes() == b"pptx"


def test_missing_source_raises_compression_error(tmp_path: Path) -> None:
    with pytest.raises(CompressionError):
        PassthroughCopier().compress(tmp_path / "missing.doc", tmp_path / "out.doc")
