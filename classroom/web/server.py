"""FastAPI application exposing uploads, resource listings and live classes."""

from __future__ import annotations

import asyncio
import contextvars
import functools
import logging
import sys
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from fastapi import FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from starlette.datastructures import FormData
from starlette.types import ASGIApp, Receive, Scope, Send

from .. import __version__
from ..config import AppConfig
from ..processing import MediaKind, is_accepted_upload
from ..services.events import emit_db_event
from ..services.ingestion import (
    COMPRESSED_URL_PREFIX,
    IngestionFatalError,
    ResourceIngestor,
    UploadRequest,
    UploadValidationError,
)
from ..services.naming import UploadTooLargeError, stage_upload
from ..services.storage import ClassroomRepository


T = TypeVar("T")

_REQUEST_ID_VAR: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "rural_classroom_request_id",
    default=None,
)

_UNSUPPORTED_TYPE_DETAIL = "Only video, PDF, DOCX, and PPT files are allowed"


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds the current request id to each record."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple[Any, Dict[str, Any]]:  # type: ignore[override]
        extra: Dict[str, Any] = dict(self.extra)
        provided = kwargs.get("extra")
        if isinstance(provided, dict):
            extra.update(provided)
        request_id = _REQUEST_ID_VAR.get()
        if request_id:
            extra.setdefault("request_id", request_id)
        kwargs["extra"] = extra
        return msg, kwargs


LOGGER = ContextualLoggerAdapter(logging.getLogger(__name__), {})
EVENT_LOGGER = ContextualLoggerAdapter(logging.getLogger("rural_classroom.events"), {})


class LargeUploadRequest(Request):
    """Request subclass that raises the multipart part limit to the upload bound."""

    async def _get_form(
        self,
        *,
        max_files: int | float = 1000,
        max_fields: int | float = 1000,
        max_part_size: int = 1024 * 1024,
    ) -> FormData:
        configured_limit = int(getattr(self.app.state, "max_upload_bytes", 0) or 0)
        effective_limit = int(max_part_size)
        if configured_limit > 0:
            effective_limit = max(configured_limit, effective_limit)
        else:
            effective_limit = sys.maxsize
        return await super()._get_form(
            max_files=max_files,
            max_fields=max_fields,
            max_part_size=effective_limit,
        )


class RequestContextMiddleware:
    """Assign a correlation identifier to each HTTP request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        token = _REQUEST_ID_VAR.set(uuid.uuid4().hex)
        try:
            await self.app(scope, receive, send)
        finally:
            _REQUEST_ID_VAR.reset(token)


class LiveClassStartPayload(BaseModel):
    subject: Optional[str] = None
    topic: Optional[str] = None
    join_link: Optional[str] = None


def _normalize_root_path(value: Optional[str]) -> str:
    if value is None:
        return ""
    normalized = value.strip()
    if not normalized:
        return ""
    if not normalized.startswith("/"):
        normalized = f"/{normalized}"
    return normalized.rstrip("/")


async def _run_blocking(operation: Callable[[], T]) -> T:
    """Run *operation* in the default executor, keeping the request context."""

    loop = asyncio.get_running_loop()
    context = contextvars.copy_context()
    return await loop.run_in_executor(None, functools.partial(context.run, operation))


def create_app(
    repository: ClassroomRepository,
    *,
    config: AppConfig,
    root_path: str | None = None,
    ingestor: Optional[ResourceIngestor] = None,
) -> FastAPI:
    """Return a configured FastAPI application."""

    app = FastAPI(
        title="Rural Classroom",
        description="Share compressed lecture resources with students",
        version=__version__,
        root_path=_normalize_root_path(root_path),
        request_class=LargeUploadRequest,
    )
    app.state.server = None
    app.state.max_upload_bytes = int(config.max_upload_bytes)

    def _repository_event_emitter(action: str, **kwargs: Any) -> None:
        emit_db_event(action, logger=EVENT_LOGGER, **kwargs)

    repository.configure_event_emitter(_repository_event_emitter)
    resource_ingestor = ingestor or ResourceIngestor(config, repository)
    app.state.ingestor = resource_ingestor

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.mount(
        COMPRESSED_URL_PREFIX,
        StaticFiles(directory=config.compressed_root, check_dir=False),
        name="compressed",
    )

    @app.get("/")
    async def index() -> Dict[str, Any]:
        return {
            "message": "Rural Classroom Backend API",
            "version": __version__,
            "endpoints": {
                "teacher": ["POST /teacher/upload - Upload and compress files"],
                "student": [
                    "GET /student/resources?subject=... - Fetch all resources",
                    "GET /student/videos?subject=... - Fetch video lectures",
                ],
                "live": [
                    "POST /live/start - Start live class",
                    "GET /live/join?subject=... - Get active live classes",
                ],
            },
        }

    @app.post("/teacher/upload")
    async def upload_resource(
        file: Optional[UploadFile] = File(None),
        subject: Optional[str] = Form(None),
        topic: Optional[str] = Form(None),
    ) -> Dict[str, Any]:
        if file is None or not (file.filename or "").strip():
            LOGGER.warning("Upload failed: No file provided")
            raise HTTPException(status_code=400, detail="No file uploaded")

        original_name = Path(file.filename.replace("\\", "/")).name
        content_type = file.content_type
        if not is_accepted_upload(original_name, content_type):
            await file.close()
            LOGGER.warning(
                "Upload rejected: unsupported type for %s (%s)", original_name, content_type
            )
            raise HTTPException(status_code=400, detail=_UNSUPPORTED_TYPE_DETAIL)

        try:
            staged_path = await _run_blocking(
                functools.partial(
                    stage_upload,
                    file.file,
                    config.staging_root,
                    original_name,
                    max_bytes=int(config.max_upload_bytes),
                )
            )
        except UploadTooLargeError as error:
            LOGGER.warning("Upload rejected: %s exceeds %s bytes", original_name, error.limit)
            raise HTTPException(status_code=413, detail="File too large") from error
        except OSError as error:
            LOGGER.error("Unable to stage upload %s: %s", original_name, error)
            raise HTTPException(status_code=500, detail="Failed to receive the uploaded file") from error
        finally:
            await file.close()

        upload = UploadRequest(
            original_name=original_name,
            staged_path=staged_path,
            subject=subject,
            topic=topic,
            content_type=content_type,
        )
        try:
            result = await _run_blocking(functools.partial(resource_ingestor.ingest, upload))
        except UploadValidationError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        except IngestionFatalError as error:
            raise HTTPException(status_code=500, detail=str(error)) from error
        return result.to_response()

    @app.get("/student/resources")
    async def list_resources(subject: Optional[str] = Query(None)) -> Dict[str, Any]:
        LOGGER.info(
            "Fetching resources%s", f" for subject: {subject}" if subject else " (all subjects)"
        )
        try:
            resources = repository.list_resources(subject=subject or None)
        except Exception as error:  # noqa: BLE001 - report as a generic failure
            LOGGER.error("Fetch resources error: %s", error)
            raise HTTPException(status_code=500, detail="Failed to fetch resources") from error
        return {
            "success": True,
            "count": len(resources),
            "resources": [record.to_dict() for record in resources],
        }

    @app.get("/student/videos")
    async def list_videos(subject: Optional[str] = Query(None)) -> Dict[str, Any]:
        LOGGER.info(
            "Fetching videos%s", f" for subject: {subject}" if subject else " (all subjects)"
        )
        try:
            videos = repository.list_resources(
                subject=subject or None, file_type=MediaKind.VIDEO.value
            )
        except Exception as error:  # noqa: BLE001 - report as a generic failure
            LOGGER.error("Fetch videos error: %s", error)
            raise HTTPException(status_code=500, detail="Failed to fetch videos") from error
        return {
            "success": True,
            "count": len(videos),
            "videos": [record.to_dict() for record in videos],
        }

    @app.post("/live/start")
    async def start_live_class(payload: LiveClassStartPayload) -> Dict[str, Any]:
        subject = (payload.subject or "").strip()
        topic = (payload.topic or "").strip()
        join_link = (payload.join_link or "").strip()
        if not subject or not topic or not join_link:
            LOGGER.warning("Live class start failed: Missing required fields")
            raise HTTPException(
                status_code=400, detail="Subject, topic, and join_link are required"
            )
        try:
            live_class = repository.create_live_class(
                subject=subject, topic=topic, join_link=join_link
            )
        except Exception as error:  # noqa: BLE001 - report as a generic failure
            LOGGER.error("Start live class error: %s", error)
            raise HTTPException(status_code=500, detail="Failed to start live class") from error
        return {
            "success": True,
            "class_id": live_class.id,
            "join_link": live_class.join_link,
            "message": "Live class started successfully",
        }

    @app.get("/live/join")
    async def list_live_classes(subject: Optional[str] = Query(None)) -> Dict[str, Any]:
        try:
            live_classes = repository.list_live_classes(subject=subject or None)
        except Exception as error:  # noqa: BLE001 - report as a generic failure
            LOGGER.error("Fetch live classes error: %s", error)
            raise HTTPException(status_code=500, detail="Failed to fetch live classes") from error
        return {
            "success": True,
            "count": len(live_classes),
            "live_classes": [record.to_dict() for record in live_classes],
        }

    return app


__all__ = ["create_app", "ContextualLoggerAdapter", "LargeUploadRequest"]
