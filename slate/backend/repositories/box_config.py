"""
BoxConfig Repository.

Data access for per-context view preferences.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.models.box_config import BoxConfig
from slate.backend.repositories.base import BaseRepository


class BoxConfigRepository(BaseRepository[BoxConfig]):
    """Repository for BoxConfig model."""

    model = BoxConfig

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def list_by_user(self, user_id: str) -> list[BoxConfig]:
        """Every view preference of a user."""
        result = await self.session.execute(
            select(BoxConfig)
            .where(BoxConfig.user_id == user_id)
            .order_by(BoxConfig.context_id)
        )
        return list(result.scalars().all())

    async def upsert(self, user_id: str, context_id: str, config: dict[str, Any]) -> tuple[BoxConfig, bool]:
        """
        Insert or replace the config keyed by (user_id, context_id).

        Returns the row and whether it changed.
        """
        row = await self.session.get(BoxConfig, (user_id, context_id))
        if row is None:
            row = BoxConfig(user_id=user_id, context_id=context_id, config=config)
            self.session.add(row)
            await self.session.flush()
            return row, True
        if row.config == config:
            return row, False
        row.config = config
        await self.session.flush()
        return row, True
