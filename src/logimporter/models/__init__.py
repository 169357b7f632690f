"""
Pydantic data models package.

Contains the normalized log batch and the Loki push wire format.
"""

from .log_batch import IngestionRequest, IngestionStream, LogBatch

__all__ = [
    "LogBatch",
    "IngestionStream",
    "IngestionRequest",
]
