"""
Base Service.

Base class for all services providing common patterns for business logic.
Services orchestrate repositories, enforce authorization and implement
business rules.

Usage:
    from slate.backend.services.base import BaseService

    class PageService(BaseService):
        def __init__(self, session: AsyncSession) -> None:
            super().__init__(session)
            self.pages = PageRepository(session)

        async def create_page(self, user_id: str, name: str) -> Page:
            name = self._require_text(name, "name")
            return await self._execute_db_operation(
                "create_page",
                self.pages.create(owner_user_id=user_id, name=name),
            )
"""

from typing import Any, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.exceptions import (
    ConflictError,
    DatabaseError,
    OperationTimeoutError,
    ValidationError,
)
from slate.backend.core.logging import get_logger
from slate.backend.core.utils import clean_text

logger = get_logger(__name__)

T = TypeVar("T")

_TIMEOUT_MARKERS = ("timeout", "timed out", "canceling statement")


def _is_timeout(error: BaseException) -> bool:
    if isinstance(error, TimeoutError):
        return True
    if isinstance(error, DBAPIError):
        text = str(error.orig).lower()
        return any(marker in text for marker in _TIMEOUT_MARKERS)
    return False


class BaseService:
    """
    Base class for all services.

    Provides:
    - Database session management
    - Logging context
    - Error wrapping for database operations
    - Common validation patterns
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the service with a database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self._session = session
        self._logger = get_logger(self.__class__.__module__)

    @property
    def session(self) -> AsyncSession:
        """Get the database session."""
        return self._session

    async def _execute_db_operation(
        self,
        operation: str,
        coro: Any,
    ) -> T:
        """
        Execute a database operation with error handling.

        Converts SQLAlchemy and driver exceptions to application errors.
        The detail is logged here; the raised error carries a fixed message.

        Raises:
            ConflictError: For unique constraint violations
            OperationTimeoutError: When the driver timeout is exceeded
            DatabaseError: For other database errors
        """
        try:
            return await coro
        except IntegrityError as e:
            self._logger.warning(
                "Database integrity error",
                extra={"operation": operation, "error": str(e.orig)},
            )
            error_str = str(e).lower()
            if "unique" in error_str or "duplicate" in error_str:
                raise ConflictError("Resource already exists") from e
            raise DatabaseError() from e
        except (TimeoutError, SQLAlchemyError) as e:
            if _is_timeout(e):
                self._logger.error(
                    "Database operation timed out",
                    extra={"operation": operation},
                )
                raise OperationTimeoutError() from e
            self._logger.error(
                "Database error",
                extra={"operation": operation, "error": str(e)},
            )
            raise DatabaseError() from e

    def _require_text(self, value: str | None, field_name: str) -> str:
        """
        Trim a required text field.

        Raises:
            ValidationError: If the value is missing or blank
        """
        cleaned = clean_text(value)
        if not cleaned:
            raise ValidationError(
                f"{field_name} must not be empty",
                details={"missing_fields": [field_name]},
            )
        return cleaned

    def _validate_required(
        self,
        fields: dict[str, Any],
        field_names: list[str],
    ) -> None:
        """
        Validate that required fields are present and not empty.

        Raises:
            ValidationError: If any required field is missing or empty
        """
        missing = []
        for name in field_names:
            value = fields.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)

        if missing:
            raise ValidationError(
                "Required fields missing",
                details={"missing_fields": missing},
            )

    def _log_operation(
        self,
        operation: str,
        **context: Any,
    ) -> None:
        """Log a service operation with context."""
        self._logger.info(
            operation,
            extra={"service": self.__class__.__name__, **context},
        )

    def _log_debug(
        self,
        message: str,
        **context: Any,
    ) -> None:
        """Log debug information."""
        self._logger.debug(
            message,
            extra={"service": self.__class__.__name__, **context},
        )
