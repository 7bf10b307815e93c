"""
API Key Repository.

Data access for API keys.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.models.api_key import ApiKey
from slate.backend.repositories.base import BaseRepository


class ApiKeyRepository(BaseRepository[ApiKey]):
    """Repository for ApiKey model."""

    model = ApiKey

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get_by_hash(self, key_hash: str) -> ApiKey | None:
        """Find a key by its SHA-256 digest."""
        result = await self.session.execute(
            select(ApiKey).where(ApiKey.key_hash == key_hash)
        )
        return result.scalar_one_or_none()

    async def list_by_user(self, user_id: str) -> list[ApiKey]:
        """Every key of a user, newest first, revoked included."""
        result = await self.session.execute(
            select(ApiKey)
            .where(ApiKey.user_id == user_id)
            .order_by(ApiKey.created_at.desc())
        )
        return list(result.scalars().all())
