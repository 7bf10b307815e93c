"""
Exception Handlers.

FastAPI exception handlers that convert application exceptions
to standardized API responses. All exceptions are logged and
returned in the standard ErrorResponse format.

Usage:
    from slate.backend.core.exception_handlers import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from slate.backend.core.config import get_app_config
from slate.backend.core.exceptions import (
    ApplicationError,
    AuthenticationError,
    AuthorizationError,
    BusyError,
    ConflictError,
    ExternalServiceError,
    InternalError,
    NotFoundError,
    OperationTimeoutError,
    UpstreamTimeoutError,
    ValidationError,
)
from slate.backend.core.logging import get_logger
from slate.backend.schemas.base import ErrorDetail, ErrorResponse, ResponseMetadata

logger = get_logger(__name__)

# Map exception types to HTTP status codes. Subclasses inherit their
# parent's status through the MRO walk in status_for().
EXCEPTION_STATUS_MAP: dict[type[ApplicationError], int] = {
    ValidationError: 400,
    AuthenticationError: 401,
    AuthorizationError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    BusyError: 409,
    ExternalServiceError: 502,
    UpstreamTimeoutError: 504,
    OperationTimeoutError: 504,
    InternalError: 500,
}

HTTP_STATUS_CODES: dict[int, str] = {
    400: "VAL_REQUEST_INVALID",
    401: "AUTH_UNAUTHORIZED",
    403: "AUTHZ_FORBIDDEN",
    404: "RES_NOT_FOUND",
    405: "REQ_METHOD_NOT_ALLOWED",
}


def status_for(exc: ApplicationError) -> int:
    """Return the HTTP status for an application error."""
    for cls in type(exc).__mro__:
        if cls in EXCEPTION_STATUS_MAP:
            return EXCEPTION_STATUS_MAP[cls]
    return 500


def _get_request_id(request: Request) -> str | None:
    """Extract request ID from request state or headers."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("x-request-id")


def _error_response(
    request: Request,
    status_code: int,
    error_detail: ErrorDetail,
) -> JSONResponse:
    metadata = ResponseMetadata(request_id=_get_request_id(request))
    response = ErrorResponse(error=error_detail, metadata=metadata)
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json"),
    )


async def application_error_handler(
    request: Request,
    exc: ApplicationError,
) -> JSONResponse:
    """
    Handle all ApplicationError subclasses.

    Authentication failures are logged with their internal reason but
    rendered identically. Server-side failures keep their fixed message;
    the detail was logged where the error was raised.
    """
    status_code = status_for(exc)

    log_extra = {
        "code": exc.code,
        "error_message": exc.message,
        "status": status_code,
    }
    if isinstance(exc, AuthenticationError):
        log_extra["reason"] = exc.reason

    if status_code >= 500:
        logger.error("Server error", extra=log_extra)
    else:
        logger.warning("Client error", extra=log_extra)

    error_detail = ErrorDetail(code=exc.code, message=exc.message)
    if isinstance(exc, ValidationError) and exc.details:
        error_detail.details = exc.details

    return _error_response(request, status_code, error_detail)


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle FastAPI/Pydantic request validation errors.

    Malformed requests are a 400 like every other input error.
    """
    errors = exc.errors()
    details = {
        "validation_errors": [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Validation error"),
                "type": err.get("type", "unknown"),
            }
            for err in errors
        ]
    }

    logger.warning(
        "Request validation failed",
        extra={"error_count": len(errors)},
    )

    error_detail = ErrorDetail(
        code="VAL_REQUEST_INVALID",
        message="Request validation failed",
        details=details,
    )
    return _error_response(request, 400, error_detail)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Render routing errors (unknown path, wrong method) in the standard envelope."""
    code = HTTP_STATUS_CODES.get(exc.status_code, "SYS_HTTP_ERROR")
    logger.warning(
        "HTTP error",
        extra={"status": exc.status_code, "code": code},
    )
    error_detail = ErrorDetail(code=code, message=str(exc.detail))
    response = _error_response(request, exc.status_code, error_detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Catches all unhandled exceptions and returns a generic error
    response. The exception text is only returned when detailed errors
    are enabled, which is never the case in production.
    """
    logger.exception(
        "Unhandled exception",
        extra={"exception_type": type(exc).__name__},
    )

    details = None
    if get_app_config().features.api_detailed_errors:
        details = {"exception_type": type(exc).__name__, "exception": str(exc)}
    error_detail = ErrorDetail(
        code="SYS_INTERNAL_ERROR",
        message="An unexpected error occurred",
        details=details,
    )
    return _error_response(request, 500, error_detail)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(ApplicationError, application_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.debug("Exception handlers registered")
