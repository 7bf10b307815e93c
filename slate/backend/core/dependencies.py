"""
FastAPI Dependencies.

Shared dependencies for request handling: the database session and the
principal resolved from the request credential.

Every credential failure is an AuthenticationError subclass and renders
as the same 401 response.
"""

from typing import Annotated

import structlog
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.database import get_db_session
from slate.backend.core.exceptions import MissingCredentialError
from slate.backend.core.logging import get_logger
from slate.backend.services.identity import IdentityService

logger = get_logger(__name__)

# Type alias for database session dependency
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _bind_principal(user_id: str, method: str) -> str:
    structlog.contextvars.bind_contextvars(user_id=user_id, auth_method=method)
    return user_id


async def get_session_principal(
    db: DbSession,
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """User id from an `Authorization: Bearer <session-token>` header."""
    user_id = await IdentityService(db).authenticate_session(_bearer_token(authorization))
    return _bind_principal(user_id, "session")


async def get_api_key_principal(
    db: DbSession,
    x_api_key: Annotated[str | None, Header()] = None,
) -> str:
    """User id from an `X-API-Key` header."""
    user_id = await IdentityService(db).authenticate_api_key(x_api_key)
    return _bind_principal(user_id, "api_key")


async def get_current_principal(
    db: DbSession,
    authorization: Annotated[str | None, Header()] = None,
    x_api_key: Annotated[str | None, Header()] = None,
) -> str:
    """User id from an API key if one is presented, else from a session token."""
    service = IdentityService(db)
    if x_api_key:
        return _bind_principal(await service.authenticate_api_key(x_api_key), "api_key")
    token = _bearer_token(authorization)
    if token:
        return _bind_principal(await service.authenticate_session(token), "session")
    raise MissingCredentialError()


SessionPrincipal = Annotated[str, Depends(get_session_principal)]
ApiKeyPrincipal = Annotated[str, Depends(get_api_key_principal)]
CurrentPrincipal = Annotated[str, Depends(get_current_principal)]
