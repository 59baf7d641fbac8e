"""
Request Context Middleware.

Gives every request an id and a frontend tag, binds both to the structlog
context for the duration of the request, and reports the handling time.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notesapp.backend.core.logging import VALID_SOURCES, get_logger

logger = get_logger(__name__)

UNKNOWN_FRONTEND = "unknown"


def resolve_frontend(header_value: str | None) -> str:
    """Normalize X-Frontend-ID; anything unrecognised becomes 'unknown'."""
    frontend = (header_value or UNKNOWN_FRONTEND).lower()
    return frontend if frontend in VALID_SOURCES else UNKNOWN_FRONTEND


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Request id and frontend tracking.

    X-Request-ID is propagated when the caller sends one and generated
    otherwise; it is echoed on the response with X-Response-Time. Handlers
    read request.state.request_id and request.state.frontend.
    """

    def __init__(self, app, log_requests: bool = True) -> None:
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        frontend = resolve_frontend(request.headers.get("X-Frontend-ID"))
        request.state.request_id = request_id
        request.state.frontend = frontend

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            frontend=frontend,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()

        if self.log_requests:
            logger.debug(
                "Request started",
                extra={"client_host": request.client.host if request.client else None},
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            # The exception handlers build the response
            logger.error(
                "Request failed with exception",
                extra={"duration_ms": _elapsed_ms(started), "error_type": type(exc).__name__},
            )
            raise
        finally:
            structlog.contextvars.clear_contextvars()

        duration_ms = _elapsed_ms(started)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        if self.log_requests:
            logger.debug(
                "Request completed",
                extra={"status_code": response.status_code, "duration_ms": duration_ms},
            )
        return response
