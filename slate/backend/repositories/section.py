"""
Section Repository.

Data access for sections.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.models.page import Page
from slate.backend.models.section import Section
from slate.backend.repositories.base import BaseRepository
from slate.backend.repositories.page import visible_page_clause


class SectionRepository(BaseRepository[Section]):
    """Repository for Section model."""

    model = Section

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def list_live_by_page(self, page_id: str) -> list[Section]:
        """Live sections of a page, ordered by position then creation."""
        result = await self.session.execute(
            select(Section)
            .where(Section.page_id == page_id, Section.deleted_at.is_(None))
            .order_by(Section.position, Section.created_at, Section.id)
        )
        return list(result.scalars().all())

    async def list_by_pages(self, page_ids: list[str]) -> list[Section]:
        """Every section of the given pages, tombstoned included."""
        if not page_ids:
            return []
        result = await self.session.execute(
            select(Section).where(Section.page_id.in_(page_ids))
        )
        return list(result.scalars().all())

    async def list_visible(self, user_id: str) -> list[tuple[Section, str]]:
        """
        Live sections of every live page visible to the user.

        Returns (section, page_name) tuples ordered by page then position.
        """
        result = await self.session.execute(
            select(Section, Page.name)
            .join(Page, Page.id == Section.page_id)
            .where(
                Section.deleted_at.is_(None),
                Page.deleted_at.is_(None),
                visible_page_clause(user_id),
            )
            .order_by(Page.position, Page.created_at, Section.position, Section.created_at)
        )
        return [(section, page_name) for section, page_name in result.all()]

    async def list_orphan_deleted(self, owner_user_id: str) -> list[tuple[Section, str]]:
        """
        Tombstoned sections whose page is live and owned by the user.

        Returns (section, page_name) tuples, newest deletion first.
        """
        result = await self.session.execute(
            select(Section, Page.name)
            .join(Page, Page.id == Section.page_id)
            .where(
                Page.owner_user_id == owner_user_id,
                Page.deleted_at.is_(None),
                Section.deleted_at.is_not(None),
            )
            .order_by(Section.deleted_at.desc())
        )
        return [(section, page_name) for section, page_name in result.all()]

    async def next_position(self, page_id: str) -> int:
        """Append position among all sections of the page, tombstoned included."""
        result = await self.session.execute(
            select(func.max(Section.position)).where(Section.page_id == page_id)
        )
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    async def position_taken(self, page_id: str, position: int) -> bool:
        """Whether a live section of the page already holds the position."""
        result = await self.session.execute(
            select(Section.id).where(
                Section.page_id == page_id,
                Section.position == position,
                Section.deleted_at.is_(None),
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None
