from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from classroom.bootstrap import Bootstrapper
from classroom.config import AppConfig


@pytest.fixture()
def temp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CLASSROOM_MAX_UPLOAD_BYTES", raising=False)

    config = AppConfig.from_mapping(
        {
            "storage_root": "uploads",
            "database_file": "data/rural_classroom.db",
            "max_upload_bytes": 1024 * 1024,
        },
        base_path=tmp_path,
    )

    Bootstrapper(config).initialize()
    return config


def build_sample_pdf(page_count: int = 2, *, metadata: dict | None = None) -> bytes:
    fitz = pytest.importorskip("fitz")
    document = fitz.open()
    for index in range(page_count):
        page = document.new_page()
        page.insert_text((72, 72 + (index * 18)), f"Sample page {index + 1}")
    if metadata:
        document.set_metadata(metadata)
    buffer = io.BytesIO()
    document.save(buffer)
    document.close()
    return buffer.getvalue()


LONG_METADATA = {
    "title": "Algebra lecture " * 40,
    "author": "Department of Mathematics " * 40,
    "subject": "Linear equations " * 40,
    "keywords": "algebra, equations, " * 60,
    "producer": "Classroom Slides Exporter " * 20,
    "creator": "Presentation Tool " * 20,
}
