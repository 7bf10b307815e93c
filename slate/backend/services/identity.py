"""
Identity Service.

Resolves a request credential to a principal and manages API keys.

Session bearer tokens come from the external identity provider and are
only verified. API keys are issued over a session-authenticated channel,
stored as SHA-256 digests and compared in constant time. Every failure
is an AuthenticationError subclass that renders identically.
"""

from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.exceptions import (
    InvalidCredentialError,
    MissingCredentialError,
    NotFoundError,
    RevokedCredentialError,
)
from slate.backend.core.security import (
    decode_token,
    generate_api_key,
    hash_api_key,
    is_well_formed_api_key,
    verify_api_key,
)
from slate.backend.core.utils import utc_now
from slate.backend.models.api_key import ApiKey
from slate.backend.repositories.api_key import ApiKeyRepository
from slate.backend.repositories.user import UserRepository
from slate.backend.services.base import BaseService


@dataclass
class IssuedKey:
    """A freshly issued key. The plain value is never retrievable again."""

    api_key: ApiKey
    plain_key: str


class IdentityService(BaseService):
    """Service for principal resolution and API key lifecycle."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.keys = ApiKeyRepository(session)
        self.users = UserRepository(session)

    async def authenticate_session(self, token: str | None) -> str:
        """
        Verify a session token and return the user id.

        An email claim is mirrored into the users table.
        """
        if not token:
            raise MissingCredentialError()
        payload = decode_token(token)
        user_id = str(payload["sub"])
        email = payload.get("email")
        await self._execute_db_operation(
            "upsert_user",
            self.users.upsert(user_id, email if isinstance(email, str) else None),
        )
        return user_id

    async def authenticate_api_key(self, plain_key: str | None) -> str:
        """
        Verify an API key and return its owner's user id.

        last_used_at is updated in a savepoint; a failure there is logged
        and does not fail the request.
        """
        if not plain_key:
            raise MissingCredentialError()
        plain_key = plain_key.strip()
        if not is_well_formed_api_key(plain_key):
            raise InvalidCredentialError()

        api_key = await self.keys.get_by_hash(hash_api_key(plain_key))
        if api_key is None or not verify_api_key(plain_key, api_key.key_hash):
            raise InvalidCredentialError()
        if api_key.is_revoked:
            raise RevokedCredentialError()

        user_id = api_key.user_id
        await self._touch(api_key)
        return user_id

    async def _touch(self, api_key: ApiKey) -> None:
        key_id = api_key.id
        try:
            async with self.session.begin_nested():
                api_key.last_used_at = utc_now()
        except SQLAlchemyError as e:
            self._logger.warning(
                "Could not record API key use",
                extra={"api_key_id": key_id, "error": str(e)},
            )

    async def issue_key(self, user_id: str, name: str) -> IssuedKey:
        """Create a key for the user and return its plain value once."""
        name = self._require_text(name, "name")
        plain_key, key_hash = generate_api_key()
        api_key = await self._execute_db_operation(
            "issue_api_key",
            self.keys.create(user_id=user_id, key_hash=key_hash, name=name),
        )
        self._log_operation("API key issued", api_key_id=api_key.id)
        return IssuedKey(api_key=api_key, plain_key=plain_key)

    async def list_keys(self, user_id: str) -> list[ApiKey]:
        return await self.keys.list_by_user(user_id)

    async def revoke_key(self, user_id: str, key_id: str) -> ApiKey:
        """Revoke one of the user's keys. Revoking twice keeps the first timestamp."""
        api_key = await self.keys.get_by_id_or_none(key_id)
        if api_key is None or api_key.user_id != user_id:
            raise NotFoundError("API key not found")
        if not api_key.is_revoked:
            api_key = await self._execute_db_operation(
                "revoke_api_key",
                self.keys.update(api_key, revoked_at=utc_now()),
            )
            self._log_operation("API key revoked", api_key_id=api_key.id)
        return api_key
