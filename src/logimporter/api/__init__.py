"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /api/import-text, /api/upload-files - Log import endpoints
- /metrics - Prometheus metrics
- /healthz, /readyz - Health checks
"""
from .healthz import router as healthz_router
from .imports import router as imports_router
from .metrics import router as metrics_router

__all__ = ["healthz_router", "imports_router", "metrics_router"]
