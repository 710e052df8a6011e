from __future__ import annotations

from datetime import datetime, timedelta, timezone

from classroom.config import AppConfig
from classroom.services.storage import ClassroomRepository


def _add_resource(repository: ClassroomRepository, name: str, file_type: str, subject: str, when: datetime):
    return repository.create_resource(
        file_name=name,
        file_type=file_type,
        subject=subject,
        topic=f"{subject} basics",
        compressed_url=f"/uploads/compressed/{name}",
        original_size=1000,
        compressed_size=400,
        upload_date=when,
    )


def test_resource_insert_and_lookup(temp_config: AppConfig) -> None:
    repository = ClassroomRepository(temp_config)
    moment = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)

    record = _add_resource(repository, "algebra.pdf", "pdf", "Math", moment)
    retrieved = repository.get_resource(record.id)

    assert retrieved is not None
    assert retrieved == record
    assert retrieved.upload_date == "2024-03-01T09:30:00+00:00"
    assert retrieved.to_dict()["compressed_size"] == 400
    assert repository.get_resource(record.id + 100) is None


def test_resources_are_listed_newest_first_with_filters(temp_config: AppConfig) -> None:
    repository = ClassroomRepository(temp_config)
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)

    _add_resource(repository, "old.pdf", "pdf", "Math", base)
    _add_resource(repository, "clip.mp4", "video", "Math", base + timedelta(days=1))
    _add_resource(repository, "cells.mp4", "video", "Biology", base + timedelta(days=2))

    assert [item.file_name for item in repository.list_resources()] == [
        "cells.mp4",
        "clip.mp4",
        "old.pdf",
    ]
    assert [item.file_name for item in repository.list_resources(subject="Math")] == [
        "clip.mp4",
        "old.pdf",
    ]
    assert [item.file_name for item in repository.list_resources(file_type="video")] == [
        "cells.mp4",
        "clip.mp4",
    ]
    assert [
        item.file_name
        for item in repository.list_resources(subject="Math", file_type="video")
    ] == ["clip.mp4"]
    assert repository.list_resources(subject="History") == []


def test_live_classes_default_to_active(temp_config: AppConfig) -> None:
    repository = ClassroomRepository(temp_config)
    base = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)

    first = repository.create_live_class(
        subject="Math", topic="Fractions", join_link="https://meet.example/a", start_time=base
    )
    repository.create_live_class(
        subject="Science",
        topic="Plants",
        join_link="https://meet.example/b",
        start_time=base + timedelta(hours=1),
    )

    assert first.status == "active"
    assert [item.subject for item in repository.list_live_classes()] == ["Science", "Math"]
    assert [item.topic for item in repository.list_live_classes(subject="Math")] == ["Fractions"]
    assert repository.list_live_classes(status="ended") == []


def test_repository_reports_database_events(temp_config: AppConfig) -> None:
    events = []

    def collect(action, *, payload=None, duration_ms=None):
        events.append((action, payload, duration_ms))

    repository = ClassroomRepository(temp_config, event_emitter=collect)
    record = _add_resource(
        repository, "notes.pdf", "pdf", "Math", datetime(2024, 1, 1, tzinfo=timezone.utc)
    )
    repository.list_resources(subject="Math")

    actions = [action for action, _, _ in events]
    assert actions == ["resources.insert", "resources.list"]
    assert events[0][1]["resource_id"] == record.id
    assert events[0][1]["status"] == "ok"
    assert events[1][1]["rowcount"] == 1
    assert "file_type" not in events[1][1]
    assert all(duration is not None and duration >= 0 for _, _, duration in events)
