"""Entry-point for the Rural Classroom backend."""

from __future__ import annotations

import inspect
import logging
import mimetypes
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from classroom.bootstrap import initialize_app
from classroom.logging_utils import build_server_handlers, configure_logging
from classroom.processing import (
    CompressionDispatcher,
    FFmpegVideoCompressor,
    FatalCompressionError,
    classify_file,
    ffmpeg_available,
)
from classroom.services.ingestion import (
    IngestionError,
    ResourceIngestor,
    UploadRequest,
    compression_ratio,
    format_ratio,
)
from classroom.services.naming import UploadTooLargeError, stage_upload
from classroom.services.storage import ClassroomRepository
from classroom.web import create_app


LOGGER = logging.getLogger("rural_classroom.cli")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5001


cli = typer.Typer(add_completion=False, help="Rural Classroom management commands")


def _prepare_logging(storage_root: Path) -> None:
    configure_logging(handlers=build_server_handlers(storage_root))


def _normalize_root_path(root_path: Optional[str]) -> str:
    if root_path is None:
        return ""
    normalized = root_path.strip()
    if not normalized:
        return ""
    if not normalized.startswith("/"):
        normalized = f"/{normalized}"
    return normalized.rstrip("/")


@cli.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Launch the API server when no explicit command is provided."""

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve, host=DEFAULT_HOST, port=DEFAULT_PORT, root_path=None)


@cli.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, help="Host interface for the API server"),
    port: int = typer.Option(DEFAULT_PORT, help="Port for the API server", envvar="PORT"),
    root_path: Optional[str] = typer.Option(
        None,
        help="Prefix the application expects when mounted behind a proxy",
        envvar="CLASSROOM_ROOT_PATH",
    ),
) -> None:
    """Run the FastAPI server."""

    app_config = initialize_app()
    _prepare_logging(app_config.storage_root)

    repository = ClassroomRepository(app_config)
    normalized_root = _normalize_root_path(root_path)
    app = create_app(repository, config=app_config, root_path=normalized_root)

    config_kwargs = {}
    max_upload_bytes = int(app_config.max_upload_bytes)
    if max_upload_bytes > 0:
        config_signature = inspect.signature(uvicorn.Config.__init__)
        if "limit_max_request_size" in config_signature.parameters:
            config_kwargs["limit_max_request_size"] = max_upload_bytes
        else:
            LOGGER.warning(
                "Ignoring max upload size limit; uvicorn.Config does not support "
                "'limit_max_request_size'.",
            )

    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        root_path=normalized_root,
        **config_kwargs,
    )
    server = uvicorn.Server(server_config)
    app.state.server = server

    LOGGER.info("Rural Classroom backend running on %s:%s", host, port)
    LOGGER.info("Upload directory: %s", app_config.staging_root)
    LOGGER.info("Compressed files: %s", app_config.compressed_root)
    if not ffmpeg_available(app_config.ffmpeg_path):
        LOGGER.warning("FFmpeg not found; uploaded videos will be stored uncompressed")
    server.run()


@cli.command()
def ingest(
    source: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Lecture file to upload",
    ),
    subject: str = typer.Option(..., help="Subject label"),
    topic: str = typer.Option(..., help="Topic label"),
) -> None:
    """Stage, compress and record a local file as a resource."""

    config = initialize_app()
    _prepare_logging(config.storage_root)

    repository = ClassroomRepository(config)
    ingestor = ResourceIngestor(config, repository)
    content_type, _ = mimetypes.guess_type(source.name)

    try:
        with source.open("rb") as handle:
            staged_path = stage_upload(
                handle,
                config.staging_root,
                source.name,
                max_bytes=int(config.max_upload_bytes),
            )
        result = ingestor.ingest(
            UploadRequest(
                original_name=source.name,
                staged_path=staged_path,
                subject=subject,
                topic=topic,
                content_type=content_type,
            )
        )
    except (IngestionError, UploadTooLargeError) as error:
        typer.echo(f"Upload failed: {error}")
        raise typer.Exit(code=1) from error

    typer.echo("Upload completed.")
    typer.echo(f"  Resource id: {result.resource_id}")
    typer.echo(f"  Type: {result.kind.value}")
    typer.echo(f"  Artifact: {result.compressed_url}")
    typer.echo(
        f"  Size: {result.original_size} -> {result.compressed_size} bytes ({result.ratio_label})"
    )
    if result.outcome is not None and result.outcome.fallback_used:
        typer.echo(f"  Compression failed, original kept: {result.outcome.error}")


@cli.command()
def compress(
    source: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="File to compress",
    ),
    output: Path = typer.Argument(..., help="Where the compressed copy is written"),
    timeout: Optional[float] = typer.Option(
        None, help="Abort video transcoding after this many seconds"
    ),
) -> None:
    """Compress a single file without recording it."""

    kind = classify_file(source.name, mimetypes.guess_type(source.name)[0])
    dispatcher = CompressionDispatcher(video=FFmpegVideoCompressor(timeout_seconds=timeout))
    output = output.expanduser().resolve()
    if output == source:
        raise typer.BadParameter("Output must differ from the source file.", param_hint="OUTPUT")

    try:
        outcome = dispatcher.compress(source, output, kind)
    except FatalCompressionError as error:
        typer.echo(f"Compression failed: {error}")
        raise typer.Exit(code=1) from error

    original_size = source.stat().st_size
    ratio = compression_ratio(original_size, outcome.output_size)
    typer.echo(f"Detected type: {kind.value}")
    typer.echo(f"Strategy: {outcome.strategy}")
    if outcome.fallback_used:
        typer.echo(f"Fell back to a plain copy: {outcome.error}")
    typer.echo(f"Compression ratio: {format_ratio(ratio)}")
    typer.echo(f"Output written to: {output}")


@cli.command()
def resources(
    subject: Optional[str] = typer.Option(None, help="Only show this subject"),
    videos: bool = typer.Option(False, "--videos", help="Only show video lectures"),
) -> None:
    """Render stored resources as a table."""

    config = initialize_app()
    repository = ClassroomRepository(config)
    records = repository.list_resources(
        subject=subject, file_type="video" if videos else None
    )

    table = Table(title="Resources")
    table.add_column("ID", justify="right")
    table.add_column("File")
    table.add_column("Type")
    table.add_column("Subject")
    table.add_column("Topic")
    table.add_column("Uploaded")
    table.add_column("Original", justify="right")
    table.add_column("Compressed", justify="right")
    table.add_column("Ratio", justify="right")
    for record in records:
        original_size = record.original_size or 0
        compressed_size = record.compressed_size or 0
        table.add_row(
            str(record.id),
            record.file_name,
            record.file_type,
            record.subject,
            record.topic,
            record.upload_date,
            str(original_size),
            str(compressed_size),
            format_ratio(compression_ratio(original_size, compressed_size)),
        )

    console = Console()
    if not records:
        console.print("(no resources)")
        return
    console.print(table)


if __name__ == "__main__":
    cli()
