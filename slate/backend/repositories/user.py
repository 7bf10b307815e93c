"""
User Repository.

Data access for the users mirrored from the identity provider.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.models.user import User
from slate.backend.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    model = User

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get_by_email(self, email: str) -> User | None:
        """Find a user by email, case-insensitively."""
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def upsert(self, user_id: str, email: str | None) -> User:
        """Create the user or refresh its email."""
        user = await self.get_by_id_or_none(user_id)
        if user is None:
            return await self.create(id=user_id, email=email)
        if email and user.email != email:
            user.email = email
            await self.session.flush()
        return user
