"""
One-shot sample import run shortly after startup.

Pushes a canned batch through the regular Loki pusher so a fresh
deployment shows data in Grafana and a broken Loki URL surfaces in the
logs right away.
"""

import asyncio
from typing import Optional

import structlog

from ..config import SampleImportSettings
from .exceptions import ForwarderError
from .forwarder import LokiPusher

logger = structlog.get_logger(__name__)

SAMPLE_LOGS = [
    "2024-06-24 09:00:00 INFO Application startup initiated (example log)",
    "2024-06-24 09:00:01 INFO Loading configuration from config.yml (example log)",
    "2024-06-24 09:00:02 INFO Database connection pool initialized (max: 10) (example log)",
    "2024-06-24 09:00:03 INFO Starting HTTP server on port 8080 (example log)",
    "2024-06-24 09:00:04 INFO Authentication module loaded successfully (example log)",
    "2024-06-24 09:00:05 WARN High memory usage detected: 85% (example log)",
    "2024-06-24 09:00:06 INFO User session cache initialized (example log)",
    "2024-06-24 09:00:07 DEBUG Loading middleware: CORS, Auth, Logging (example log)",
    "2024-06-24 09:00:08 INFO Background job scheduler started (example log)",
    "2024-06-24 09:00:09 ERROR Failed to connect to external API: timeout (example log)",
    "2024-06-24 09:00:10 INFO Retrying external API connection... (example log)",
    "2024-06-24 09:00:11 INFO External API connection established (example log)",
    "2024-06-24 09:00:12 INFO Application ready to accept requests (example log)",
    "2024-06-24 09:00:13 INFO Health check endpoint active: /health (example log)",
    "2024-06-24 09:00:14 INFO Metrics endpoint active: /metrics (example log)",
]


class SampleImportJob:
    """
    Delayed one-shot push of SAMPLE_LOGS.

    State after the run: `succeeded` is True/False and `error` holds the
    failure message, both None while pending or when cancelled.
    """

    def __init__(self, settings: SampleImportSettings, pusher: LokiPusher):
        self.settings = settings
        self.pusher = pusher
        self.succeeded: Optional[bool] = None
        self.error: Optional[str] = None
        self._task: Optional[asyncio.Task[None]] = None

    def start(self) -> None:
        """Schedule the run on the current event loop."""
        if self._task is not None:
            return

        self._task = asyncio.create_task(self._run())
        logger.info("Sample import scheduled", delay_seconds=self.settings.delay_seconds)

    async def stop(self) -> None:
        """Cancel the run if it has not finished yet."""
        if self._task is None:
            return

        if not self._task.done():
            self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.debug("Sample import cancelled")
        self._task = None

    async def wait(self) -> None:
        """Wait for the scheduled run to finish."""
        if self._task is not None:
            await self._task

    @property
    def done(self) -> bool:
        return self.succeeded is not None

    async def _run(self) -> None:
        await asyncio.sleep(self.settings.delay_seconds)

        logger.info("Importing sample logs to verify setup", service_name=self.settings.service_name)
        try:
            count = await self.pusher.push(self.settings.service_name, SAMPLE_LOGS)
        except ForwarderError as e:
            self.succeeded = False
            self.error = str(e)
            logger.warning("Failed to import sample logs", error=str(e))
            return

        self.succeeded = True
        logger.info("Successfully imported sample logs", lines_count=count)
