"""Persistence helpers backed by SQLite."""

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ..config import AppConfig


@dataclass
class ResourceRecord:
    id: int
    file_name: str
    file_type: str
    subject: str
    topic: str
    upload_date: str
    compressed_url: str
    original_size: Optional[int]
    compressed_size: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LiveClassRecord:
    id: int
    subject: str
    topic: str
    join_link: str
    start_time: str
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


LOGGER = logging.getLogger(__name__)

_RESOURCE_COLUMNS = (
    "id, file_name, file_type, subject, topic, upload_date, "
    "compressed_url, original_size, compressed_size"
)
_LIVE_CLASS_COLUMNS = "id, subject, topic, join_link, start_time, status"


def _utc_timestamp(moment: Optional[datetime] = None) -> str:
    value = moment or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class ClassroomRepository:
    """Store for uploaded resources and live-class sessions.

    Records are only ever inserted and listed; updates and deletes are not part
    of the upload pipeline.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        event_emitter: Optional[Callable[..., None]] = None,
    ) -> None:
        self._db_path = config.database_file
        self._event_emitter: Optional[Callable[..., None]] = event_emitter

    def configure_event_emitter(self, emitter: Optional[Callable[..., None]]) -> None:
        """Register the callable receiving ``(action, payload=..., duration_ms=...)``."""

        self._event_emitter = emitter

    @contextlib.contextmanager
    def _track_db_event(self, action: str, **payload: Any) -> Iterator[Dict[str, Any]]:
        if self._event_emitter is None:
            yield payload
            return

        start = time.perf_counter()
        event_payload: Dict[str, Any] = dict(payload)
        try:
            yield event_payload
        except Exception as exc:
            event_payload["status"] = "error"
            event_payload["error"] = f"{exc.__class__.__name__}: {exc}"
            raise
        else:
            event_payload.setdefault("status", "ok")
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            filtered = {key: value for key, value in event_payload.items() if value is not None}
            self._event_emitter(action, payload=filtered, duration_ms=duration_ms)

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        LOGGER.debug("Opening SQLite connection to %s", self._db_path)
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        try:
            with connection:
                yield connection
        finally:
            connection.close()

    @staticmethod
    def _filters(conditions: Sequence[Tuple[str, Any]]) -> Tuple[str, List[Any]]:
        clauses = [f"{column} = ?" for column, value in conditions if value is not None]
        params = [value for _, value in conditions if value is not None]
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------
    def create_resource(
        self,
        *,
        file_name: str,
        file_type: str,
        subject: str,
        topic: str,
        compressed_url: str,
        original_size: int,
        compressed_size: int,
        upload_date: Optional[datetime] = None,
    ) -> ResourceRecord:
        timestamp = _utc_timestamp(upload_date)
        with self._track_db_event(
            "resources.insert",
            file_type=file_type,
            subject=subject,
            original_size=original_size,
            compressed_size=compressed_size,
        ) as event:
            with self._connect() as connection:
                cursor = connection.execute(
                    "INSERT INTO resources(file_name, file_type, subject, topic, upload_date, "
                    "compressed_url, original_size, compressed_size) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        file_name,
                        file_type,
                        subject,
                        topic,
                        timestamp,
                        compressed_url,
                        int(original_size),
                        int(compressed_size),
                    ),
                )
                resource_id = int(cursor.lastrowid)
            event["resource_id"] = resource_id
        LOGGER.info("Resource '%s' stored with id=%s", file_name, resource_id)
        return ResourceRecord(
            id=resource_id,
            file_name=file_name,
            file_type=file_type,
            subject=subject,
            topic=topic,
            upload_date=timestamp,
            compressed_url=compressed_url,
            original_size=int(original_size),
            compressed_size=int(compressed_size),
        )

    def get_resource(self, resource_id: int) -> Optional[ResourceRecord]:
        with self._track_db_event("resources.get", resource_id=resource_id) as event:
            with self._connect() as connection:
                row = connection.execute(
                    f"SELECT {_RESOURCE_COLUMNS} FROM resources WHERE id = ?",
                    (resource_id,),
                ).fetchone()
            event["found"] = row is not None
        return ResourceRecord(**row) if row else None

    def list_resources(
        self,
        *,
        subject: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> List[ResourceRecord]:
        """Return resources newest first, optionally filtered."""

        where, params = self._filters((("subject", subject), ("file_type", file_type)))
        with self._track_db_event(
            "resources.list", subject=subject, file_type=file_type
        ) as event:
            with self._connect() as connection:
                rows = connection.execute(
                    f"SELECT {_RESOURCE_COLUMNS} FROM resources{where} "
                    "ORDER BY upload_date DESC, id DESC",
                    params,
                ).fetchall()
            event["rowcount"] = len(rows)
        return [ResourceRecord(**row) for row in rows]

    # ------------------------------------------------------------------
    # Live classes
    # ------------------------------------------------------------------
    def create_live_class(
        self,
        *,
        subject: str,
        topic: str,
        join_link: str,
        start_time: Optional[datetime] = None,
    ) -> LiveClassRecord:
        timestamp = _utc_timestamp(start_time)
        with self._track_db_event("live_classes.insert", subject=subject) as event:
            with self._connect() as connection:
                cursor = connection.execute(
                    "INSERT INTO live_classes(subject, topic, join_link, start_time) "
                    "VALUES (?, ?, ?, ?)",
                    (subject, topic, join_link, timestamp),
                )
                class_id = int(cursor.lastrowid)
            event["class_id"] = class_id
        LOGGER.info("Live class started: %s - %s (id=%s)", subject, topic, class_id)
        return LiveClassRecord(
            id=class_id,
            subject=subject,
            topic=topic,
            join_link=join_link,
            start_time=timestamp,
            status="active",
        )

    def list_live_classes(
        self,
        *,
        subject: Optional[str] = None,
        status: Optional[str] = "active",
    ) -> List[LiveClassRecord]:
        """Return live classes newest first; only active ones by default."""

        where, params = self._filters((("status", status), ("subject", subject)))
        with self._track_db_event(
            "live_classes.list", subject=subject, status=status
        ) as event:
            with self._connect() as connection:
                rows = connection.execute(
                    f"SELECT {_LIVE_CLASS_COLUMNS} FROM live_classes{where} "
                    "ORDER BY start_time DESC, id DESC",
                    params,
                ).fetchall()
            event["rowcount"] = len(rows)
        return [LiveClassRecord(**row) for row in rows]


__all__ = ["ClassroomRepository", "LiveClassRecord", "ResourceRecord"]
