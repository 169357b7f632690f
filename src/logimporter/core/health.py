"""
Health checker for the Loki dependency.

Readiness means Loki's /ready endpoint answers 200 right now.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from ..config import LokiSettings

logger = structlog.get_logger(__name__)


@dataclass
class HealthCheck:
    """Individual health check result."""
    name: str
    status: str  # "healthy", "unhealthy"
    message: str
    details: Dict[str, Any]
    last_check: float


@dataclass
class HealthStatus:
    """Overall health status."""
    is_healthy: bool
    checks: Dict[str, HealthCheck]
    failed_checks: List[str]
    timestamp: float


class HealthChecker:
    """Checks that Loki is reachable and ready."""

    def __init__(self, settings: LokiSettings, timeout_seconds: float = 5):
        self.settings = settings
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Start the health checker."""
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
        )

    async def stop(self) -> None:
        """Stop the health checker."""
        if self._session:
            await self._session.close()
            self._session = None

    async def check_all(self) -> HealthStatus:
        """Perform all health checks and return overall status."""
        loki = await self._check_loki_connectivity()
        checks = {loki.name: loki}
        failed_checks = [name for name, check in checks.items() if check.status != "healthy"]

        return HealthStatus(
            is_healthy=not failed_checks,
            checks=checks,
            failed_checks=failed_checks,
            timestamp=time.time(),
        )

    async def _check_loki_connectivity(self) -> HealthCheck:
        """Check if Loki is reachable and ready."""
        ready_url = self.settings.ready_url

        if not self._session:
            return HealthCheck(
                name="loki",
                status="unhealthy",
                message="Health checker not started",
                details={},
                last_check=time.time(),
            )

        start = time.monotonic()
        try:
            async with self._session.get(ready_url) as response:
                if response.status == 200:
                    return HealthCheck(
                        name="loki",
                        status="healthy",
                        message="Loki is reachable",
                        details={
                            "url": ready_url,
                            "status_code": response.status,
                            "response_time_ms": int((time.monotonic() - start) * 1000),
                        },
                        last_check=time.time(),
                    )
                return HealthCheck(
                    name="loki",
                    status="unhealthy",
                    message=f"Loki returned status {response.status}",
                    details={
                        "url": ready_url,
                        "status_code": response.status,
                        "response_body": await response.text(errors="replace"),
                    },
                    last_check=time.time(),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Loki connectivity check failed", error=str(e))
            return HealthCheck(
                name="loki",
                status="unhealthy",
                message=f"Cannot reach Loki: {e}",
                details={"error": str(e), "url": ready_url},
                last_check=time.time(),
            )
