"""
Input normalization for imported log text.

Both entry points follow the same convention: the first line may declare
`service_name: <name>`, every other line is trimmed and blank lines are
dropped. They differ in how a missing declaration is treated:

- normalize_text: the declaration is mandatory
- normalize_stream: a first line that is not a declaration is content
"""

from typing import BinaryIO, Iterable, Iterator, List, Optional, Tuple

import structlog

from ..models.log_batch import LogBatch
from .exceptions import FileOpenFailure, MissingServiceName, NoValidLines

logger = structlog.get_logger(__name__)

SERVICE_NAME_PREFIX = "service_name:"


def parse_service_name(line: str) -> Optional[str]:
    """
    Return the declared service name, or None if the line is no declaration.

    An empty string is returned for a declaration without a value.
    """
    stripped = line.strip()
    if not stripped.startswith(SERVICE_NAME_PREFIX):
        return None
    return stripped.split(":", 1)[1].strip()


def clean_lines(lines: Iterable[str]) -> List[str]:
    """Trim lines and drop the blank ones, keeping order."""
    cleaned = []
    for line in lines:
        stripped = line.strip()
        if stripped:
            cleaned.append(stripped)
    return cleaned


def normalize_text(log_text: str) -> LogBatch:
    """
    Normalize a pasted text blob.

    Raises:
        MissingServiceName: first line does not declare a non-empty service_name
        NoValidLines: no non-blank line follows the declaration
    """
    lines = log_text.split("\n")
    service_name = ""

    if lines:
        declared = parse_service_name(lines[0])
        if declared is not None:
            service_name = declared
            lines = lines[1:]

    if not service_name:
        raise MissingServiceName()

    valid_lines = clean_lines(lines)
    if not valid_lines:
        raise NoValidLines()

    return LogBatch(service_name=service_name, lines=valid_lines)


def scan_stream(lines: Iterable[str]) -> Tuple[str, List[str]]:
    """
    Split a line stream into (service_name, cleaned lines).

    The service name is empty when the first line is not a declaration,
    in which case that line is kept as content.
    """
    iterator = iter(lines)
    service_name = ""
    content: List[str] = []

    first = next(iterator, None)
    if first is not None:
        declared = parse_service_name(first)
        if declared is not None:
            service_name = declared
        else:
            content.append(first)

    content.extend(iterator)
    return service_name, clean_lines(content)


def normalize_stream(lines: Iterable[str], source: str = "<stream>") -> LogBatch:
    """
    Normalize a line stream such as an uploaded file.

    Raises:
        MissingServiceName: no service_name declaration on the first line
        NoValidLines: the stream holds no non-blank content lines
    """
    service_name, valid_lines = scan_stream(lines)

    if not service_name:
        raise MissingServiceName(
            f"{source} is missing service_name. "
            "Add 'service_name: your-service-name' as the first line"
        )
    if not valid_lines:
        raise NoValidLines(f"{source} contains no valid log lines")

    return LogBatch(service_name=service_name, lines=valid_lines)


def _decode_lines(stream: BinaryIO) -> Iterator[str]:
    for raw in stream:
        yield raw.decode("utf-8", errors="replace")


def normalize_file(stream: BinaryIO, filename: str) -> LogBatch:
    """
    Normalize an uploaded file read line by line.

    Raises:
        FileOpenFailure: the underlying file could not be read
        MissingServiceName, NoValidLines: as for normalize_stream
    """
    try:
        stream.seek(0)
        lines = list(_decode_lines(stream))
    except (OSError, ValueError) as e:
        logger.warning("Failed to read uploaded file", filename=filename, error=str(e))
        raise FileOpenFailure(filename, e) from e

    return normalize_stream(lines, source=filename)
