"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.exceptions import (
    CompletionRecordNotFound,
    InvalidTransition,
    LedgerValidationError,
    PersistFailure,
    ReadOnlyWorkflow,
    SideFlowRequired,
)

logger = logging.getLogger(__name__)


def _json_error(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, request_id).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return _json_error(request, 409, ErrorCodes.INVALID_STATUS_TRANSITION, str(exc))

    @app.exception_handler(SideFlowRequired)
    async def side_flow_handler(request: Request, exc: SideFlowRequired):
        return _json_error(request, 409, ErrorCodes.SIDE_FLOW_REQUIRED, str(exc))

    @app.exception_handler(ReadOnlyWorkflow)
    async def read_only_handler(request: Request, exc: ReadOnlyWorkflow):
        return _json_error(request, 409, ErrorCodes.RECORD_READ_ONLY, str(exc))

    @app.exception_handler(LedgerValidationError)
    async def ledger_validation_handler(request: Request, exc: LedgerValidationError):
        return _json_error(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc))

    @app.exception_handler(CompletionRecordNotFound)
    async def record_not_found_handler(request: Request, exc: CompletionRecordNotFound):
        return _json_error(request, 404, ErrorCodes.NOT_FOUND, str(exc))

    @app.exception_handler(PersistFailure)
    async def persist_failure_handler(request: Request, exc: PersistFailure):
        logger.warning("Persistence failure: %s", exc)
        return _json_error(request, 502, ErrorCodes.PERSIST_FAILED, str(exc))

    @app.exception_handler(PermissionError)
    async def permission_error_handler(request: Request, exc: PermissionError):
        return _json_error(request, 403, ErrorCodes.AUTHORIZATION_DENIED, str(exc))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return _json_error(request, 404, ErrorCodes.NOT_FOUND, message)
        if "already exists" in message.lower():
            return _json_error(request, 409, ErrorCodes.ALREADY_EXISTS, message)
        return _json_error(request, 400, ErrorCodes.INVALID_REQUEST, message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _json_error(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _json_error(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
