"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
Every class carries a stable `code` that is returned to the caller.
"""


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """Raised when a resource cannot be found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class AuthenticationError(ApplicationError):
    """
    Raised when authentication fails.

    Subclasses record the internal reason for logging. They all render
    with the same code and message so callers cannot probe credentials.
    """

    reason = "unauthorized"

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, code="AUTH_UNAUTHORIZED")


class MissingCredentialError(AuthenticationError):
    """No credential was presented."""

    reason = "missing_credential"


class InvalidCredentialError(AuthenticationError):
    """The credential is malformed or unknown."""

    reason = "invalid_credential"


class RevokedCredentialError(AuthenticationError):
    """The API key exists but has been revoked."""

    reason = "revoked_credential"


class ExpiredSessionError(AuthenticationError):
    """The session token has expired."""

    reason = "expired_session"


class AuthorizationError(ApplicationError):
    """Raised when authorization fails."""

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(message, code="AUTHZ_FORBIDDEN")


class ConflictError(ApplicationError):
    """Raised when there is a state conflict."""

    def __init__(self, message: str = "Resource conflict") -> None:
        super().__init__(message, code="RES_CONFLICT")


class BusyError(ApplicationError):
    """Raised when the intake pipeline already has a request in flight."""

    def __init__(self, message: str = "An intake request is already in progress") -> None:
        super().__init__(message, code="INTAKE_BUSY")


class ExternalServiceError(ApplicationError):
    """Raised when an external service call fails."""

    def __init__(self, message: str = "External service error") -> None:
        super().__init__(message, code="SYS_EXTERNAL_SERVICE_ERROR")


class UpstreamTimeoutError(ApplicationError):
    """Raised when an external service does not answer in time."""

    def __init__(self, message: str = "External service timed out") -> None:
        super().__init__(message, code="SYS_UPSTREAM_TIMEOUT")


class OperationTimeoutError(ApplicationError):
    """Raised when a database operation exceeds the driver timeout."""

    def __init__(self, message: str = "Operation timed out") -> None:
        super().__init__(message, code="SYS_TIMEOUT")


class InternalError(ApplicationError):
    """Raised for unexpected failures. The message never carries details."""

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message, code="SYS_INTERNAL_ERROR")


class DatabaseError(InternalError):
    """Raised when a database operation fails."""

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message)
        self.code = "SYS_DATABASE_ERROR"
