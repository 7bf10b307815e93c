"""
Access Service.

Resolves the effective role of a principal on a page and loads entities
through the visibility rule. Every write path goes through here.

A row that is absent, tombstoned, or under a tombstoned ancestor is
NotFound. A live row on a page the principal holds no visible permission
on, or an insufficient role, is Forbidden.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.exceptions import AuthorizationError, NotFoundError
from slate.backend.models.note import Note
from slate.backend.models.page import Page
from slate.backend.models.permission import PermissionStatus, Role
from slate.backend.models.section import Section
from slate.backend.repositories.note import NoteRepository
from slate.backend.repositories.page import PageRepository
from slate.backend.repositories.permission import PermissionRepository
from slate.backend.repositories.section import SectionRepository
from slate.backend.services.base import BaseService

ANY_ROLE = frozenset(Role)
PAGE_MANAGE = frozenset({Role.OWNER})
PAGE_STAR = frozenset({Role.OWNER, Role.TEAM_ADMIN})
SHARE_MANAGE = frozenset({Role.OWNER, Role.TEAM_ADMIN})
SECTION_WRITE = frozenset({Role.OWNER, Role.TEAM_ADMIN, Role.TEAM})
NOTE_CREATE = frozenset({Role.OWNER, Role.TEAM_ADMIN, Role.TEAM})
NOTE_EDIT_OWN = frozenset({Role.OWNER, Role.TEAM_ADMIN, Role.TEAM})
NOTE_EDIT_ANY = frozenset({Role.OWNER, Role.TEAM_ADMIN})
NOTE_COMPLETE = frozenset({Role.OWNER, Role.TEAM_ADMIN, Role.TEAM, Role.TEAM_LIMITED})


class AccessService(BaseService):
    """Visibility and role checks for pages, sections and notes."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.pages = PageRepository(session)
        self.sections = SectionRepository(session)
        self.notes = NoteRepository(session)
        self.permissions = PermissionRepository(session)

    async def role_on(self, user_id: str, page: Page) -> Role | None:
        """Effective role of the user on the page, or None if it is not visible."""
        if page.owner_user_id == user_id:
            return Role.OWNER
        permission = await self.permissions.get(page.id, user_id)
        if permission is None or permission.status == PermissionStatus.DECLINED:
            return None
        try:
            return Role(permission.role)
        except ValueError:
            self._logger.warning(
                "Unknown role on permission",
                extra={"page_id": page.id, "role": permission.role},
            )
            return None

    def ensure_role(self, role: Role, allowed: frozenset[Role], action: str) -> None:
        """
        Raises:
            AuthorizationError: If the role is not in the allowed set
        """
        if role not in allowed:
            self._logger.info(
                "Access denied",
                extra={"action": action, "role": role.value},
            )
            raise AuthorizationError(f"Your role on this page does not allow: {action}")

    async def require_page(
        self,
        user_id: str,
        page_id: str,
        allowed: frozenset[Role] = ANY_ROLE,
        action: str = "read page",
    ) -> tuple[Page, Role]:
        """Load a live page and check the principal's role on it."""
        page = await self.pages.get_by_id_or_none(page_id)
        if page is None or page.deleted_at is not None:
            raise NotFoundError("Page not found")
        role = await self.role_on(user_id, page)
        if role is None:
            raise AuthorizationError("Page not accessible")
        self.ensure_role(role, allowed, action)
        return page, role

    async def require_section(
        self,
        user_id: str,
        section_id: str,
        allowed: frozenset[Role] = ANY_ROLE,
        action: str = "read section",
    ) -> tuple[Section, Page, Role]:
        """Load a live section under a live page and check the principal's role."""
        section = await self.sections.get_by_id_or_none(section_id)
        if section is None or section.deleted_at is not None:
            raise NotFoundError("Section not found")
        page, role = await self.require_page(user_id, section.page_id, allowed, action)
        return section, page, role

    async def require_note(
        self,
        user_id: str,
        note_id: str,
    ) -> tuple[Note, Section, Page, Role]:
        """Load a live note under live ancestors the principal can see."""
        note = await self.notes.get_by_id_or_none(note_id)
        if note is None or note.deleted_at is not None:
            raise NotFoundError("Note not found")
        section = await self.sections.get_by_id_or_none(note.section_id)
        if section is None or section.deleted_at is not None:
            raise NotFoundError("Note not found")
        page, role = await self.require_page(user_id, section.page_id)
        return note, section, page, role

    def ensure_note_write(
        self,
        user_id: str,
        note: Note,
        role: Role,
        action: str,
    ) -> None:
        """Own notes need an edit role; other people's notes need an edit-any role."""
        allowed = NOTE_EDIT_OWN if note.created_by_user_id == user_id else NOTE_EDIT_ANY
        self.ensure_role(role, allowed, action)
