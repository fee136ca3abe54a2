"""
Shared error handling for the Lighthouse client.
"""

from typing import Dict, Any, Optional

import httpx
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    status_code: Optional[int] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class LighthouseException(Exception):
    """Base exception for the Lighthouse client."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            status_code=getattr(self, "status_code", None),
            details=self.details
        )


class ApiError(LighthouseException):
    """Non-2xx response returned by the backend."""

    def __init__(self, response: httpx.Response, message: Optional[str] = None):
        self.response = response
        self.request = response.request
        self.status_code = response.status_code
        super().__init__(
            "API_ERROR",
            message or _server_message(response),
            {"status_code": response.status_code, "url": str(response.request.url)}
        )


class AuthenticationError(LighthouseException):
    """Credential entry rejected by the backend (login or registration)."""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class SessionExpiredError(LighthouseException):
    """The session can not be recovered and the user must sign in again."""

    def __init__(self, message: str = "Session expired", details: Optional[Dict[str, Any]] = None):
        super().__init__("SESSION_EXPIRED", message, details)


class RefreshError(LighthouseException):
    """The refresh endpoint answered without a usable access token."""

    def __init__(self, message: str = "Token refresh failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("REFRESH_ERROR", message, details)


class ValidationError(LighthouseException):
    """Invalid arguments passed to a service method."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


def _server_message(response: httpx.Response) -> str:
    """Extract the backend's ``error`` message, falling back to the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message"):
            if isinstance(body.get(key), str):
                return body[key]
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()
