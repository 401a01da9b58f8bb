"""
Shared error handling for the USCIS case status proxy.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from .logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    message: str
    code: str
    request_id: Optional[str] = None


class CaseProxyException(Exception):
    """Base exception for the proxy services.

    ``message`` and ``details`` are for logs. Callers only ever see
    ``public_error`` and ``public_message``.
    """

    status_code: int = 500
    public_error: str = "Service error"
    public_message: str = "An error occurred while fetching case status"

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            error=self.public_error,
            message=self.public_message,
            code=self.code,
            request_id=request_id_var.get()
        )


class ValidationError(CaseProxyException):
    """Malformed caller input. Raised before any network activity."""

    status_code = 400
    public_error = "Invalid receipt number format"
    public_message = "Receipt number should be in the format: XXX0000000000"

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(CaseProxyException):
    """Upstream reports that the requested case does not exist."""

    status_code = 404
    public_error = "Case not found"
    public_message = "The receipt number you provided was not found in the USCIS system"

    def __init__(self, message: str = "Case not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class AuthError(CaseProxyException):
    """Client-credentials token exchange failed."""

    def __init__(self, message: str = "Failed to obtain access token", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class UpstreamError(CaseProxyException):
    """Any other upstream or transport failure."""

    def __init__(self, service: str, message: str = "Upstream service error", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("UPSTREAM_ERROR", f"{service}: {message}", details)
