"""
Prometheus metrics collection.

In-memory counters on a per-application registry; Prometheus handles
storage.
"""

import time
from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for the log importer.

    Each collector owns its registry so several app instances (tests)
    can coexist in one process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        # Service info
        self.service_info = Info(
            "logimporter_service",
            "Log importer service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": "0.1.0",
            "service": "logimporter",
        })

        # Import metrics
        self.lines_imported_total = Counter(
            "lines_imported_total",
            "Total number of log lines pushed to Loki",
            ["service_name", "endpoint"],
            registry=self.registry,
        )

        self.import_errors_total = Counter(
            "import_errors_total",
            "Total number of rejected imports",
            ["endpoint", "reason"],
            registry=self.registry,
        )

        self.files_processed_total = Counter(
            "files_processed_total",
            "Total uploaded files processed",
            ["outcome"],
            registry=self.registry,
        )

        self.batch_size_lines = Histogram(
            "import_batch_size_lines",
            "Number of lines per imported batch",
            buckets=[1, 10, 50, 100, 500, 1000, 5000, 10000, 50000],
            registry=self.registry,
        )

        # Loki metrics
        self.loki_requests_total = Counter(
            "loki_requests_total",
            "Total push requests to Loki",
            ["status_code"],
            registry=self.registry,
        )

        self.loki_request_duration = Histogram(
            "loki_request_duration_seconds",
            "Loki push request duration in seconds",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        # System metrics
        self.uptime_seconds = Gauge(
            "uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )

        self._start_time = time.time()

    def record_import(self, service_name: str, endpoint: str, lines_count: int) -> None:
        """Record a successfully imported batch."""
        self.lines_imported_total.labels(
            service_name=service_name,
            endpoint=endpoint,
        ).inc(lines_count)
        self.batch_size_lines.observe(lines_count)

    def record_import_error(self, endpoint: str, reason: str) -> None:
        """Record a rejected import."""
        self.import_errors_total.labels(endpoint=endpoint, reason=reason).inc()

    def record_file(self, outcome: str) -> None:
        """Record one uploaded file outcome ("success" or "error")."""
        self.files_processed_total.labels(outcome=outcome).inc()

    def record_loki_request(self, status_code: Optional[int], duration_seconds: float) -> None:
        """Record a Loki push; a None status means a transport failure."""
        label = str(status_code) if status_code is not None else "transport_error"
        self.loki_requests_total.labels(status_code=label).inc()
        self.loki_request_duration.observe(duration_seconds)

    def update_system_metrics(self) -> None:
        """Update system-level metrics."""
        self.uptime_seconds.set(time.time() - self._start_time)
