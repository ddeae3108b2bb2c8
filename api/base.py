"""Unified API response envelope for the back-office endpoints."""

from typing import Any
from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from utils.timezone import now_utc


class APIError(BaseModel):
    """Error details in API response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")


class APIMeta(BaseModel):
    """Metadata included in every API response."""

    timestamp: datetime = Field(..., description="Response timestamp (UTC)")
    request_id: str = Field(..., description="Request identifier, echoed in X-Request-ID")


class APIResponse(BaseModel):
    """
    Envelope returned by every endpoint.

    Exactly one of data and error is meaningful, selected by success.
    """

    success: bool
    data: Any | None = None
    error: APIError | None = None
    meta: APIMeta


def _meta(request_id: str | None) -> APIMeta:
    return APIMeta(timestamp=now_utc(), request_id=request_id or str(uuid4()))


def success_response(data: Any, request_id: str | None = None) -> APIResponse:
    return APIResponse(success=True, data=data, error=None, meta=_meta(request_id))


def error_response(code: str, message: str, request_id: str | None = None) -> APIResponse:
    return APIResponse(
        success=False,
        data=None,
        error=APIError(code=code, message=message),
        meta=_meta(request_id),
    )


class ErrorCodes:
    """Standard error codes for consistent error handling."""

    # Identity & Authorization
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    AUTHORIZATION_DENIED = "AUTHORIZATION_DENIED"

    # Resource Errors
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Appointment Lifecycle
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    SIDE_FLOW_REQUIRED = "SIDE_FLOW_REQUIRED"
    RECORD_READ_ONLY = "RECORD_READ_ONLY"

    # Infrastructure
    PERSIST_FAILED = "PERSIST_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
