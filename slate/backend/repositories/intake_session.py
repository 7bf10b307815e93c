"""
Intake Session Repository.

Data access for the per-user intake coordinator state.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.models.intake_session import IntakeSession
from slate.backend.repositories.base import BaseRepository


class IntakeSessionRepository(BaseRepository[IntakeSession]):
    """Repository for IntakeSession model."""

    model = IntakeSession

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get_for_user(self, user_id: str) -> IntakeSession | None:
        """The session of a user, if one was ever started."""
        return await self.session.get(IntakeSession, user_id)

    async def save(self, row: IntakeSession) -> IntakeSession:
        """Persist a new or modified session."""
        self.session.add(row)
        await self.session.flush()
        return row
