"""
Page Service.

Read and write paths for pages: listing with role projection, creation,
rename, star, reorder and soft delete.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.exceptions import ConflictError, ValidationError
from slate.backend.core.utils import utc_now
from slate.backend.models.page import Page
from slate.backend.models.permission import Role
from slate.backend.repositories.page import PageRepository
from slate.backend.services.access import PAGE_MANAGE, PAGE_STAR, AccessService
from slate.backend.services.base import BaseService


@dataclass
class PageListing:
    """A visible page as seen by one principal."""

    page: Page
    my_role: str
    permission_status: str | None = None
    owner_email: str | None = None


def validate_order(requested: list[str], live_ids: list[str], kind: str) -> None:
    """
    A reorder must name every live sibling exactly once.

    Raises:
        ValidationError: If the list is not exactly the live sibling set
    """
    if len(requested) != len(set(requested)) or set(requested) != set(live_ids):
        raise ValidationError(
            f"Order must list every live {kind} exactly once",
            details={"expected": sorted(live_ids), "received": requested},
        )


class PageService(BaseService):
    """Service for page business logic."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.pages = PageRepository(session)
        self.access = AccessService(session)

    async def list_pages(self, user_id: str) -> list[PageListing]:
        """Owned pages first, then pages shared with the user, each in position order."""
        owned = await self.pages.list_owned_live(user_id)
        shared = await self.pages.list_shared_live(user_id)

        listings = [PageListing(page=page, my_role=Role.OWNER.value) for page in owned]
        listings.extend(
            PageListing(
                page=page,
                my_role=permission.role,
                permission_status=permission.status,
                owner_email=owner_email,
            )
            for page, permission, owner_email in shared
        )
        return listings

    async def create_page(
        self,
        user_id: str,
        name: str,
        position: int | None = None,
        starred: bool = False,
    ) -> Page:
        """
        Create a page owned by the principal.

        Raises:
            ValidationError: If the name is blank
            ConflictError: If an explicit position is held by a live page
        """
        name = self._require_text(name, "name")
        if position is None:
            position = await self.pages.next_position(user_id)
        elif await self.pages.position_taken(user_id, position):
            raise ConflictError(f"Position {position} is already taken")

        page = await self._execute_db_operation(
            "create_page",
            self.pages.create(
                owner_user_id=user_id,
                name=name,
                position=position,
                starred=starred,
            ),
        )
        self._log_operation("Page created", page_id=page.id, position=position)
        return page

    async def update_page(
        self,
        user_id: str,
        page_id: str,
        name: str | None = None,
        starred: bool | None = None,
    ) -> Page:
        """Rename (owner only) and/or star (owner or team-admin) a page."""
        page, role = await self.access.require_page(user_id, page_id)
        changes: dict[str, object] = {}
        if name is not None:
            self.access.ensure_role(role, PAGE_MANAGE, "rename page")
            changes["name"] = self._require_text(name, "name")
        if starred is not None:
            self.access.ensure_role(role, PAGE_STAR, "star page")
            changes["starred"] = starred
        if not changes:
            return page

        page = await self._execute_db_operation(
            "update_page",
            self.pages.update(page, **changes),
        )
        self._log_operation("Page updated", page_id=page.id, fields=sorted(changes))
        return page

    async def reorder_pages(self, user_id: str, page_ids: list[str]) -> list[Page]:
        """Assign dense positions to the principal's live owned pages."""
        owned = await self.pages.list_owned_live(user_id)
        validate_order(page_ids, [page.id for page in owned], "page")

        by_id = {page.id: page for page in owned}
        for index, page_id in enumerate(page_ids):
            by_id[page_id].position = index
        await self._execute_db_operation("reorder_pages", self.session.flush())
        self._log_operation("Pages reordered", count=len(page_ids))
        return [by_id[page_id] for page_id in page_ids]

    async def delete_page(self, user_id: str, page_id: str) -> None:
        """Tombstone the page. Sections and notes are hidden by the ancestor rule."""
        page, _ = await self.access.require_page(
            user_id, page_id, PAGE_MANAGE, "delete page",
        )
        await self._execute_db_operation(
            "delete_page",
            self.pages.update(page, deleted_at=utc_now()),
        )
        self._log_operation("Page deleted", page_id=page_id)
