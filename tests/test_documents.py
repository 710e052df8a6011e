from __future__ import annotations

from pathlib import Path

import pytest

from classroom.processing import CompressionError, PdfMetadataOptimizer

from conftest import LONG_METADATA, build_sample_pdf


def test_metadata_is_cleared_and_file_shrinks(tmp_path: Path) -> None:
    fitz = pytest.importorskip("fitz")
    source = tmp_path / "lecture.pdf"
    source.write_bytes(build_sample_pdf(3, metadata=LONG_METADATA))
    output = tmp_path / "compressed" / "lecture-compressed.pdf"

    PdfMetadataOptimizer().compress(source, output)

    assert output.exists()
    assert output.stat().st_size < source.stat().st_size
    with fitz.open(output) as document:
        assert document.page_count == 3
        for key in ("title", "author", "subject", "keywords", "producer", "creator"):
            assert not document.metadata.get(key)
        assert "Sample page 2" in document[1].get_text()


def test_invalid_pdf_raises_and_leaves_no_output(tmp_path: Path) -> None:
    pytest.importorskip("fitz")
    source = tmp_path / "broken.pdf"
    source.write_bytes(b"this is not a pdf document")
    output = tmp_path / "broken-compressed.pdf"

    with pytest.raises(CompressionError):
        PdfMetadataOptimizer().compress(source, output)

    assert not output.exists()
