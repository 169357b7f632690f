"""
Core business logic components.

This package contains the import path components:
- Input normalization (service_name convention, blank-line removal)
- Loki pusher (payload formatting and the push request)
- Startup sample import
- Health checks and metrics collection
"""
