"""
Exception Handlers.

Turns the note service error taxonomy into HTTP responses. Every error,
whatever its origin, leaves the API as an ErrorResponse envelope carrying
the request id.

Usage:
    from notesapp.backend.core.exception_handlers import register_exception_handlers

    register_exception_handlers(app)
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from notesapp.backend.core.exceptions import (
    ApplicationError,
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
    NotFoundError,
    PersistenceError,
    StorageError,
    ValidationError,
)
from notesapp.backend.core.logging import get_logger
from notesapp.backend.schemas.base import ErrorDetail, ErrorResponse, ResponseMetadata

logger = get_logger(__name__)

EXCEPTION_STATUS_MAP: dict[type[ApplicationError], int] = {
    ValidationError: 400,
    AuthenticationError: 401,
    AuthorizationError: 403,
    NotFoundError: 404,
    ExternalServiceError: 502,
    StorageError: 502,
    PersistenceError: 500,
}

# Store failures are never described to the caller
GENERIC_SERVER_ERROR_MESSAGE = "A server error occurred"


def _get_request_id(request: Request) -> str | None:
    """Request id set by the middleware, else the inbound header."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("x-request-id")


def _status_for(exc: ApplicationError) -> int:
    # Most specific class wins, so subclasses inherit their parent's status
    for cls in type(exc).__mro__:
        if cls in EXCEPTION_STATUS_MAP:
            return EXCEPTION_STATUS_MAP[cls]
    return 500


def _error_response(
    status_code: int,
    code: str,
    message: str,
    request_id: str | None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details),
        metadata=ResponseMetadata(request_id=request_id),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _request_fields(request: Request, request_id: str | None) -> dict[str, Any]:
    fields: dict[str, Any] = {"path": request.url.path, "method": request.method}
    if request_id:
        fields["request_id"] = request_id
    return fields


async def application_error_handler(
    request: Request,
    exc: ApplicationError,
) -> JSONResponse:
    """
    Handle ApplicationError and its subclasses.

    Validation details are passed through; persistence failures are
    reported with a generic message only.
    """
    status_code = _status_for(exc)
    request_id = _get_request_id(request)

    fields = _request_fields(request, request_id)
    fields.update(code=exc.code, message=exc.message, status=status_code)
    if status_code >= 500:
        logger.error("Server error", extra=fields)
    else:
        logger.warning("Client error", extra=fields)

    message = GENERIC_SERVER_ERROR_MESSAGE if isinstance(exc, PersistenceError) else exc.message
    details = exc.details if isinstance(exc, ValidationError) and exc.details else None
    return _error_response(status_code, exc.code, message, request_id, details)


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed requests rejected by FastAPI before reaching a handler."""
    request_id = _get_request_id(request)
    errors = exc.errors()

    fields = _request_fields(request, request_id)
    fields["error_count"] = len(errors)
    logger.warning("Request validation failed", extra=fields)

    return _error_response(
        422,
        "VAL_REQUEST_INVALID",
        "Request validation failed",
        request_id,
        {
            "validation_errors": [
                {
                    "field": ".".join(str(part) for part in err.get("loc", [])),
                    "message": err.get("msg", "Validation error"),
                    "type": err.get("type", "unknown"),
                }
                for err in errors
            ]
        },
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    request_id = _get_request_id(request)

    fields = _request_fields(request, request_id)
    fields["exception_type"] = type(exc).__name__
    logger.exception("Unhandled exception", extra=fields)

    return _error_response(500, "SYS_INTERNAL_ERROR", "An unexpected error occurred", request_id)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on the app; the catch-all goes last."""
    app.add_exception_handler(ApplicationError, application_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.debug("Exception handlers registered")
