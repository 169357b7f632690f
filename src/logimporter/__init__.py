"""
Log Importer - paste or upload log text → Grafana Loki

A FastAPI-based web UI that labels raw log text with a service name
and pushes it to Loki's ingestion API.
"""

__version__ = "0.1.0"
