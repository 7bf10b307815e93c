"""
Page Repository.

Data access for pages, including the visibility clause every read of the
hierarchy is filtered through.
"""

from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.models.page import Page
from slate.backend.models.permission import Permission, PermissionStatus
from slate.backend.models.user import User
from slate.backend.repositories.base import BaseRepository


def visible_page_clause(user_id: str) -> ColumnElement[bool]:
    """
    Pages a principal may see: owned, or shared through a permission
    that has not been declined. Liveness is filtered separately.
    """
    shared = select(Permission.page_id).where(
        Permission.user_id == user_id,
        Permission.status != PermissionStatus.DECLINED.value,
    )
    return or_(Page.owner_user_id == user_id, Page.id.in_(shared))


class PageRepository(BaseRepository[Page]):
    """Repository for Page model."""

    model = Page

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def list_owned_live(self, user_id: str) -> list[Page]:
        """Live pages owned by the user, in position order."""
        result = await self.session.execute(
            select(Page)
            .where(Page.owner_user_id == user_id, Page.deleted_at.is_(None))
            .order_by(Page.position, Page.created_at, Page.id)
        )
        return list(result.scalars().all())

    async def list_owned(self, user_id: str) -> list[Page]:
        """Every page owned by the user, tombstoned included."""
        result = await self.session.execute(
            select(Page)
            .where(Page.owner_user_id == user_id)
            .order_by(Page.position, Page.created_at, Page.id)
        )
        return list(result.scalars().all())

    async def list_shared_live(
        self,
        user_id: str,
    ) -> list[tuple[Page, Permission, str | None]]:
        """
        Live pages shared with the user through a non-declined permission.

        Returns (page, permission, owner_email) tuples in position order.
        """
        result = await self.session.execute(
            select(Page, Permission, User.email)
            .join(Permission, Permission.page_id == Page.id)
            .outerjoin(User, User.id == Page.owner_user_id)
            .where(
                Permission.user_id == user_id,
                Permission.status != PermissionStatus.DECLINED.value,
                Page.owner_user_id != user_id,
                Page.deleted_at.is_(None),
            )
            .order_by(Page.position, Page.created_at, Page.id)
        )
        return [(page, permission, email) for page, permission, email in result.all()]

    async def list_visible_live_ids(self, user_id: str) -> set[str]:
        """IDs of live pages visible to the user."""
        result = await self.session.execute(
            select(Page.id).where(
                Page.deleted_at.is_(None),
                visible_page_clause(user_id),
            )
        )
        return set(result.scalars().all())

    async def list_owned_deleted(self, user_id: str) -> list[Page]:
        """Tombstoned pages owned by the user, newest deletion first."""
        result = await self.session.execute(
            select(Page)
            .where(Page.owner_user_id == user_id, Page.deleted_at.is_not(None))
            .order_by(Page.deleted_at.desc())
        )
        return list(result.scalars().all())

    async def next_position(self, owner_user_id: str) -> int:
        """Append position among all pages of the owner, tombstoned included."""
        result = await self.session.execute(
            select(func.max(Page.position)).where(Page.owner_user_id == owner_user_id)
        )
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    async def position_taken(self, owner_user_id: str, position: int) -> bool:
        """Whether a live page of the owner already holds the position."""
        result = await self.session.execute(
            select(Page.id).where(
                Page.owner_user_id == owner_user_id,
                Page.position == position,
                Page.deleted_at.is_(None),
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None
