"""
Log batch and Loki push payload models.

- LogBatch: service name plus the cleaned, ordered lines to import
- IngestionStream / IngestionRequest: Loki push API wire format
"""

from typing import Dict, List

from pydantic import BaseModel, Field, field_validator


class LogBatch(BaseModel):
    """
    Normalized import unit.

    Never empty: the normalizer rejects inputs without a service name or
    without at least one non-blank line before a batch is built.
    """

    service_name: str = Field(
        min_length=1,
        description="Value of the job and service_name stream labels"
    )
    lines: List[str] = Field(
        min_length=1,
        description="Trimmed, non-blank log lines in submission order"
    )

    @field_validator("service_name")
    def validate_service_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("service_name must not be blank")
        return v

    @field_validator("lines")
    def validate_lines(cls, v: List[str]) -> List[str]:
        """Lines must already be trimmed and non-blank."""
        for line in v:
            if not line.strip():
                raise ValueError("log lines must not be blank")
        return v


class IngestionStream(BaseModel):
    """
    One Loki stream: a label set and its [timestamp_ns, line] values.
    """

    stream: Dict[str, str] = Field(description="Stream labels")
    values: List[List[str]] = Field(description="[nanosecond timestamp, line] pairs")


class IngestionRequest(BaseModel):
    """
    Body of POST /loki/api/v1/push.

    Loki expects:
    {
        "streams": [
            {
                "stream": {"label1": "value1"},
                "values": [["timestamp_ns", "log_line"], ...]
            }
        ]
    }
    """

    streams: List[IngestionStream] = Field(description="Streams to push")

    @property
    def entries_count(self) -> int:
        return sum(len(stream.values) for stream in self.streams)
