"""
Custom exceptions for the log importer.

Provides structured error handling with appropriate HTTP status codes
and error details for API responses.
"""

from typing import Any, Dict, Optional


class LogImporterException(Exception):
    """Base exception for the log importer."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ValidationError(LogImporterException):
    """Raised when submitted input cannot be turned into a log batch."""

    def __init__(
        self,
        message: str,
        error_code: str = "validation_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details,
        )


class MissingServiceName(ValidationError):
    """Raised when the first line carries no usable service_name."""

    def __init__(
        self,
        message: str = "Missing service_name. First line must be 'service_name: your-service-name'",
    ) -> None:
        super().__init__(message=message, error_code="missing_service_name")


class NoValidLines(ValidationError):
    """Raised when nothing but blank lines remain after normalization."""

    def __init__(self, message: str = "No valid log lines found") -> None:
        super().__init__(message=message, error_code="no_valid_lines")


class FileOpenFailure(ValidationError):
    """Raised when an uploaded file cannot be read."""

    def __init__(self, filename: str, cause: Exception) -> None:
        super().__init__(
            message=str(cause),
            error_code="file_open_failure",
            details={"filename": filename, "error_type": type(cause).__name__},
        )
        self.filename = filename


class ForwarderError(LogImporterException):
    """Raised when forwarding to Loki fails."""

    def __init__(
        self,
        message: str,
        error_code: str = "forwarder_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code=error_code,
            details=details,
        )


class SerializationFailure(ForwarderError):
    """Raised when a push request cannot be encoded as JSON."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(
            message=f"failed to marshal JSON: {cause}",
            error_code="serialization_failure",
        )


class TransportFailure(ForwarderError):
    """Raised on network-level failures (refused, DNS, timeout)."""

    def __init__(self, cause: Exception) -> None:
        reason = str(cause) or type(cause).__name__
        super().__init__(
            message=f"failed to send to Loki: {reason}",
            error_code="transport_failure",
            details={"error_type": type(cause).__name__},
        )
        self.cause = cause


class BackendRejected(ForwarderError):
    """Raised when Loki answers with anything other than 204."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(
            message=f"Loki returned status {status}: {body}",
            error_code="backend_rejected",
            details={"status": status},
        )
        self.status = status
        self.body = body
