"""
Request Context Middleware.

Middleware for request tracking, timing, client identification, and context propagation.
"""

import uuid
from datetime import datetime

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from slate.backend.core.logging import get_logger
from slate.backend.core.utils import utc_now

logger = get_logger(__name__)

# Clients that identify themselves with X-Frontend-ID
KNOWN_FRONTENDS = {"web", "extension", "cli", "api", "internal"}


def _request_logging_enabled() -> bool:
    from slate.backend.core.config import get_app_config
    return get_app_config().features.api_request_logging


def _elapsed_ms(start_time: datetime) -> int:
    return int((utc_now() - start_time).total_seconds() * 1000)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds request context to every request.

    - Generates or propagates the request ID (X-Request-ID header)
    - Extracts the client identifier (X-Frontend-ID header)
    - Records request timing (X-Response-Time header)
    - Binds request_id, frontend, method and path to structlog

    The auth dependencies add user_id to the same context once the
    principal is resolved, so every log line of an authenticated request
    carries it.

    Access in endpoints:
        request.state.request_id
        request.state.frontend
        request.state.start_time
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request with context tracking."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        frontend = request.headers.get("X-Frontend-ID", "unknown").lower()
        if frontend not in KNOWN_FRONTENDS:
            frontend = "unknown"

        start_time = utc_now()

        request.state.request_id = request_id
        request.state.frontend = frontend
        request.state.start_time = start_time

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            frontend=frontend,
            method=request.method,
            path=request.url.path,
        )

        logger.debug(
            "Request started",
            extra={
                "client_host": request.client.host if request.client else None,
                "user_agent": request.headers.get("User-Agent"),
            },
        )

        try:
            response = await call_next(request)

            duration_ms = _elapsed_ms(start_time)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms}ms"

            log = logger.info if _request_logging_enabled() else logger.debug
            log(
                "Request completed",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            return response

        except Exception as exc:
            logger.error(
                "Request failed with exception",
                extra={
                    "duration_ms": _elapsed_ms(start_time),
                    "error_type": type(exc).__name__,
                },
            )
            raise

        finally:
            # Context vars must not leak into the next request on this worker
            structlog.contextvars.clear_contextvars()
