"""
Main FastAPI application entry point.

This module sets up the FastAPI app with all middleware, routes, and lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .api import healthz_router, imports_router, metrics_router
from .config import Settings, get_settings
from .core.exceptions import LogImporterException
from .core.forwarder import LokiPusher
from .core.health import HealthChecker
from .core.metrics import MetricsCollector
from .core.sample_import import SampleImportJob


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    # Silence the verbose watchfiles logger
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler(settings: Settings) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Opens the Loki and health-check sessions and schedules the
        sample import; tears them down in reverse order.
        """
        logger = structlog.get_logger(__name__)
        logger.info(
            "Starting log importer",
            version=app.version,
            loki_url=settings.loki.base_url,
            port=settings.port,
        )

        pusher: LokiPusher = app.state.pusher
        await pusher.start()

        health_checker = HealthChecker(settings.loki)
        app.state.health_checker = health_checker
        await health_checker.start()

        sample_job: Optional[SampleImportJob] = None
        if settings.sample_import.enabled:
            sample_job = SampleImportJob(settings.sample_import, pusher)
            sample_job.start()
        app.state.sample_import = sample_job

        try:
            logger.info("Log importer UI started", url=f"http://{settings.host}:{settings.port}")
            yield
        finally:
            logger.info("Shutting down log importer")

            if sample_job is not None:
                await sample_job.stop()
            await health_checker.stop()
            await pusher.stop()

            logger.info("Log importer shutdown complete")

    return lifespan


def register_exception_handlers(app: FastAPI) -> None:
    """Render errors as plain text, the format the UI displays."""

    @app.exception_handler(LogImporterException)
    async def importer_exception_handler(request: Request, exc: LogImporterException) -> PlainTextResponse:
        logger = structlog.get_logger(__name__)
        logger.error(
            "Import request failed",
            error=str(exc),
            error_code=exc.error_code,
            status_code=exc.status_code,
            path=request.url.path,
            method=request.method,
        )
        return PlainTextResponse(str(exc), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
        logger = structlog.get_logger(__name__)
        logger.error(
            "Unexpected exception occurred",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )
        return PlainTextResponse("An unexpected error occurred", status_code=500)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    All components receive `settings` explicitly; nothing below this
    function reads configuration on its own.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(settings.log_level)

    app = FastAPI(
        title="Log Importer",
        description="Paste or upload log text → Grafana Loki",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=create_lifespan_handler(settings),
    )

    app.state.settings = settings
    app.state.metrics = MetricsCollector()
    app.state.pusher = LokiPusher(settings.loki, metrics=app.state.metrics)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(imports_router, prefix="/api", tags=["import"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(healthz_router, tags=["health"])

    static_dir = settings.static_dir
    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    @app.get("/", include_in_schema=False)
    async def root() -> FileResponse:
        """Serve the import UI."""
        return FileResponse(static_dir / "index.html")

    return app


app = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "logimporter.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
