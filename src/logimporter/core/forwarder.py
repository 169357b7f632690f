"""
Loki pusher: formats log batches and sends them to Grafana Loki.

Features:
- One stream per push labelled job/source/service_name
- Synthetic, strictly increasing nanosecond timestamps
- Single POST per batch with a bounded timeout, no retries
"""

import asyncio
import time
from typing import Any, List, Optional, Sequence

import aiohttp
import structlog
from pydantic import ValidationError as PydanticValidationError

from ..config import LokiSettings
from ..models.log_batch import IngestionRequest, IngestionStream, LogBatch
from .exceptions import BackendRejected, ForwarderError, SerializationFailure, TransportFailure
from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)

# Offset between consecutive lines of one batch
LINE_OFFSET_NS = 1_000


def build_stream_labels(service_name: str, source: str = "ui-import") -> dict:
    """Label set attached to every imported stream."""
    return {
        "job": service_name,
        "source": source,
        "service_name": service_name,
    }


def build_push_request(
    service_name: str,
    lines: Sequence[str],
    source: str = "ui-import",
    reference_ns: Optional[int] = None,
) -> Optional[IngestionRequest]:
    """
    Convert lines into a single-stream Loki push request.

    Line i is stamped reference + i microseconds so lines keep their
    submission order in Loki. Blank lines are dropped without shifting
    the stamps of later lines. Returns None when nothing is left to push.
    """
    if reference_ns is None:
        reference_ns = time.time_ns()

    values: List[List[str]] = []
    for i, line in enumerate(lines):
        if not line.strip():
            continue
        timestamp = str(reference_ns + i * LINE_OFFSET_NS)
        values.append([timestamp, line])

    if not values:
        return None

    return IngestionRequest(
        streams=[
            IngestionStream(
                stream=build_stream_labels(service_name, source),
                values=values,
            )
        ]
    )


class LokiPusher:
    """
    Sends formatted batches to the Loki push API.

    Owns one aiohttp session for its lifetime; start() and stop() are
    called from the application lifespan, or use it as an async context
    manager.
    """

    def __init__(self, settings: LokiSettings, metrics: Optional[MetricsCollector] = None):
        self.settings = settings
        self.metrics = metrics
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info("Loki pusher initialized", loki_url=settings.push_url)

    async def start(self) -> None:
        """Open the HTTP session."""
        if self.session is not None:
            return

        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
        )
        logger.info("Loki pusher started", timeout_seconds=self.settings.timeout_seconds)

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

        logger.info("Loki pusher stopped")

    async def __aenter__(self) -> "LokiPusher":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def push_batch(self, batch: LogBatch) -> int:
        """Push a normalized batch. See push()."""
        return await self.push(batch.service_name, batch.lines)

    async def push(self, service_name: str, lines: Sequence[str]) -> int:
        """
        Format and send lines as one Loki stream.

        Returns:
            Number of lines sent (0 when there was nothing to send)

        Raises:
            SerializationFailure: payload could not be encoded
            TransportFailure: Loki unreachable or the request timed out
            BackendRejected: Loki answered with a status other than 204
        """
        request = build_push_request(service_name, lines, source=self.settings.source_label)
        if request is None:
            logger.debug("Nothing to push", service_name=service_name)
            return 0

        try:
            payload = request.model_dump_json()
        except (PydanticValidationError, TypeError, ValueError) as e:
            raise SerializationFailure(e) from e

        await self._send(payload, service_name, request.entries_count)
        return request.entries_count

    async def _send(self, payload: str, service_name: str, entries_count: int) -> None:
        if not self.session:
            raise ForwarderError("Loki pusher not started")

        headers = {
            "Content-Type": "application/json",
            "User-Agent": "logimporter/0.1.0",
        }

        start = time.monotonic()
        try:
            async with self.session.post(
                self.settings.push_url,
                data=payload.encode("utf-8"),
                headers=headers,
            ) as response:
                status = response.status
                body = "" if status == 204 else await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._record(None, start)
            logger.error(
                "Loki push failed",
                service_name=service_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportFailure(e) from e

        self._record(status, start)

        if status != 204:
            logger.error(
                "Loki returned error",
                service_name=service_name,
                status=status,
                error=body,
            )
            raise BackendRejected(status, body)

        logger.info(
            "Successfully sent to Loki",
            service_name=service_name,
            entries_count=entries_count,
        )

    def _record(self, status: Optional[int], start: float) -> None:
        if self.metrics:
            self.metrics.record_loki_request(status, time.monotonic() - start)
