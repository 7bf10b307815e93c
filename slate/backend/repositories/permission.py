"""
Permission Repository.

Data access for page shares. Permissions have a composite key, so the
id-based helpers of BaseRepository do not apply.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.models.permission import Permission
from slate.backend.models.user import User
from slate.backend.repositories.base import BaseRepository


class PermissionRepository(BaseRepository[Permission]):
    """Repository for Permission model."""

    model = Permission

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get(self, page_id: str, user_id: str) -> Permission | None:
        """The permission of a user on a page, if any."""
        result = await self.session.execute(
            select(Permission).where(
                Permission.page_id == page_id,
                Permission.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_by_page(self, page_id: str) -> list[tuple[Permission, str | None]]:
        """Permissions on a page with each grantee's email."""
        result = await self.session.execute(
            select(Permission, User.email)
            .outerjoin(User, User.id == Permission.user_id)
            .where(Permission.page_id == page_id)
            .order_by(Permission.created_at, Permission.user_id)
        )
        return [(permission, email) for permission, email in result.all()]

    async def delete_by_pages(self, page_ids: list[str]) -> None:
        """Permanently remove every permission on the given pages."""
        if not page_ids:
            return
        await self.session.execute(
            delete(Permission).where(Permission.page_id.in_(page_ids))
        )
