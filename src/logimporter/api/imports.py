"""
Log import API endpoints.

- POST /api/import-text: pasted text, first line `service_name: <name>`
- POST /api/upload-files: one or more files under the `files` field
"""

from dataclasses import dataclass
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import PlainTextResponse

from ..core.exceptions import (
    FileOpenFailure,
    ForwarderError,
    MissingServiceName,
    NoValidLines,
    ValidationError,
)
from ..core.forwarder import LokiPusher
from ..core.metrics import MetricsCollector
from ..core.normalizer import normalize_file, normalize_text

logger = structlog.get_logger(__name__)

router = APIRouter()


def get_pusher(request: Request) -> LokiPusher:
    """Dependency to get the Loki pusher from app state."""
    return request.app.state.pusher


def get_metrics(request: Request) -> Optional[MetricsCollector]:
    """Dependency to get the metrics collector from app state (if available)."""
    return getattr(request.app.state, "metrics", None)


@router.post(
    "/import-text",
    response_class=PlainTextResponse,
    summary="Import pasted log text",
    description="""
    Import a block of log text into Loki.

    The first line must be `service_name: <name>`; it becomes the `job`
    and `service_name` labels. Remaining non-blank lines are trimmed and
    pushed as one stream in submission order.
    """,
)
async def import_text(
    log_text: str = Form(default="", alias="logText"),
    pusher: LokiPusher = Depends(get_pusher),
    metrics: Optional[MetricsCollector] = Depends(get_metrics),
) -> str:
    if log_text == "":
        raise ValidationError("No log text provided", error_code="empty_log_text")

    try:
        batch = normalize_text(log_text)
    except ValidationError as e:
        if metrics:
            metrics.record_import_error("import-text", e.error_code)
        raise

    logger.info(
        "Importing pasted logs",
        service_name=batch.service_name,
        lines_count=len(batch.lines),
    )

    try:
        await pusher.push_batch(batch)
    except ForwarderError as e:
        if metrics:
            metrics.record_import_error("import-text", e.error_code)
        raise ForwarderError(
            f"Failed to send logs to Loki: {e}",
            error_code=e.error_code,
            details=e.details,
        ) from e

    if metrics:
        metrics.record_import(batch.service_name, "import-text", len(batch.lines))

    return f"Successfully imported {len(batch.lines)} log lines as service '{batch.service_name}'"


@dataclass
class FileImportResult:
    """Outcome of importing a single uploaded file."""
    filename: str
    service_name: str = ""
    lines_imported: int = 0
    error: Optional[str] = None
    reason: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


async def import_file(upload: UploadFile, pusher: LokiPusher) -> FileImportResult:
    """
    Normalize and push one uploaded file.

    Every failure is folded into the result so sibling files keep going.
    """
    filename = upload.filename or ""

    try:
        batch = normalize_file(upload.file, filename)
    except (MissingServiceName, NoValidLines) as e:
        return FileImportResult(filename, error=f"ERROR: {e}", reason=e.error_code)
    except FileOpenFailure as e:
        return FileImportResult(filename, error=f"Failed to read {filename}: {e}", reason=e.error_code)
    finally:
        await upload.close()

    try:
        count = await pusher.push_batch(batch)
    except ForwarderError as e:
        return FileImportResult(
            filename,
            service_name=batch.service_name,
            error=f"Failed to import {filename}: {e}",
            reason=e.error_code,
        )

    return FileImportResult(filename, service_name=batch.service_name, lines_imported=count)


def build_upload_report(files_count: int, results: List[FileImportResult]) -> str:
    """Plain-text summary of a multi-file upload."""
    successes = [
        f"✓ {r.filename}: {r.lines_imported} lines imported (service: {r.service_name})"
        for r in results if r.success
    ]
    errors = [r.error for r in results if not r.success]
    total_lines = sum(r.lines_imported for r in results if r.success)

    report = f"Processed {files_count} file(s), imported {total_lines} total lines\n\n"
    if successes:
        report += "SUCCESS:\n" + "\n".join(successes)
    if errors:
        report += "\n\nERRORS:\n" + "\n".join(errors)
    return report


@router.post(
    "/upload-files",
    response_class=PlainTextResponse,
    summary="Import uploaded log files",
    description="""
    Import one or more log files into Loki, one push per file.

    Each file follows the `service_name: <name>` first-line convention.
    Files are processed in order and a failing file never stops the rest.
    Responds 200 with a per-file report, or 400 when every file failed.
    """,
)
async def upload_files(
    files: Optional[List[UploadFile]] = File(default=None),
    pusher: LokiPusher = Depends(get_pusher),
    metrics: Optional[MetricsCollector] = Depends(get_metrics),
) -> str:
    # Browsers send an empty, nameless part when no file was picked
    uploads = [upload for upload in files or [] if upload.filename]
    if not uploads:
        raise ValidationError("No files provided", error_code="no_files")

    logger.info("Processing uploaded files", files_count=len(uploads))

    results: List[FileImportResult] = []
    for upload in uploads:
        result = await import_file(upload, pusher)
        results.append(result)

        if result.success:
            logger.info(
                "File imported",
                filename=result.filename,
                service_name=result.service_name,
                lines_count=result.lines_imported,
            )
        else:
            logger.warning("File import failed", filename=result.filename, error=result.error)

        if metrics:
            if result.success:
                metrics.record_file("success")
                metrics.record_import(result.service_name, "upload-files", result.lines_imported)
            else:
                metrics.record_file("error")
                metrics.record_import_error("upload-files", result.reason or "unknown")

    if not any(r.success for r in results):
        raise ValidationError(
            "\n".join(r.error for r in results if r.error),
            error_code="all_files_failed",
        )

    return build_upload_report(len(uploads), results)
