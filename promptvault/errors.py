from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Error body of HTTPExceptions raised by the management endpoints:
    {
        "error": "unauthorized",
        "message": "Missing authorization",
        "code": 401,
        "details": {...}
    }
    """

    error: str = Field(..., description="Machine-readable error type")
    message: str = Field(..., description="Human-readable error message")
    code: int = Field(..., description="HTTP status code for this error")
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Optional structured error details"
    )


def http_error(
    status_code: int,
    *,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> HTTPException:
    """
    Helper to create an HTTPException with a standardised error body.
    """
    payload = ErrorResponse(
        error=error,
        message=message,
        code=status_code,
        details=details,
    )
    return HTTPException(status_code=status_code, detail=payload.model_dump())


def unauthorized(message: str) -> HTTPException:
    exc = http_error(status.HTTP_401_UNAUTHORIZED, error="unauthorized", message=message)
    exc.headers = {"WWW-Authenticate": "Bearer"}
    return exc


class GatewayError(Exception):
    """
    Base class for errors raised by the provider gateway core.

    `message` is what the caller sees; it must never contain secrets.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(GatewayError):
    """Malformed request."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(GatewayError):
    """Missing or invalid caller credential."""

    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(GatewayError):
    """No usable key or record."""

    status_code = status.HTTP_404_NOT_FOUND


class InternalError(GatewayError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


class UpstreamError(GatewayError):
    """
    Non-2xx answer from a provider. The status code is relayed as-is and
    the upstream body is attached under `details`.
    """

    def __init__(self, status_code: int, details: Any) -> None:
        super().__init__("API request failed", status_code=status_code)
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "details": self.details}


class UpstreamUnavailableError(GatewayError):
    """Transport-level failure while talking to a provider."""

    status_code = status.HTTP_502_BAD_GATEWAY


__all__ = [
    "AuthError",
    "ErrorResponse",
    "GatewayError",
    "InternalError",
    "NotFoundError",
    "UpstreamError",
    "UpstreamUnavailableError",
    "ValidationError",
    "http_error",
    "unauthorized",
]
