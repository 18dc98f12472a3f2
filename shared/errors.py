"""
Shared error handling for the Tekton Hub proxy.
"""

from http import HTTPStatus
from typing import Dict, Any, Optional

from opentelemetry import trace
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body in the legacy Tekton Hub shape, plus correlation fields."""

    error: str
    name: str
    code: Optional[str] = None
    trace_id: Optional[str] = None


def _current_trace_id() -> Optional[str]:
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        span_context = current_span.get_span_context()
        if span_context.trace_id != 0:
            return f"{span_context.trace_id:032x}"
    return None


def build_error_response(status_code: int, message: str, code: Optional[str] = None) -> ErrorResponse:
    """Build an error body for an arbitrary status code."""
    return ErrorResponse(
        error=message,
        name=HTTPStatus(status_code).phrase,
        code=code,
        trace_id=_current_trace_id(),
    )


class ProxyException(Exception):
    """Base exception for proxy services."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return build_error_response(self.status_code, self.message, self.code)


class ValidationError(ProxyException):
    """Validation-related errors."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class InvalidVersionError(ValidationError):
    """A version string that does not parse as a semantic version."""

    def __init__(self, version: str, details: Optional[Dict[str, Any]] = None):
        self.version = version
        super().__init__(f"invalid version format: {version}", details)


class NotFoundError(ProxyException):
    """Requested resource does not exist upstream."""

    status_code = 404

    def __init__(self, message: str = "resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class ConversionError(ProxyException):
    """Upstream payload could not be converted to the legacy shape."""

    status_code = 500

    def __init__(self, message: str = "conversion error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONVERSION_ERROR", message, details)


class NotImplementedFeatureError(ProxyException):
    """Legacy endpoint that has no upstream equivalent."""

    status_code = 501

    def __init__(self, message: str = "not implemented", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_IMPLEMENTED", message, details)


class ServiceError(ProxyException):
    """Service-related errors."""

    status_code = 500

    def __init__(self, message: str = "Service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_ERROR", message, details)


class ExternalServiceError(ProxyException):
    """External service errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)
