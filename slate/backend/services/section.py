"""
Section Service.

Read and write paths for sections.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.exceptions import ConflictError, ValidationError
from slate.backend.core.utils import utc_now
from slate.backend.models.section import Section
from slate.backend.repositories.section import SectionRepository
from slate.backend.services.access import SECTION_WRITE, AccessService
from slate.backend.services.base import BaseService
from slate.backend.services.page import validate_order


@dataclass
class SectionListing:
    section: Section
    page_name: str


class SectionService(BaseService):
    """Service for section business logic."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.sections = SectionRepository(session)
        self.access = AccessService(session)

    async def list_sections(self, user_id: str, page_id: str | None = None) -> list[SectionListing]:
        """
        Sections of one visible page, or of every visible page.

        Raises:
            NotFoundError: If page_id is absent or tombstoned
            AuthorizationError: If the page exists but is not shared with the user
        """
        if page_id is None:
            return [
                SectionListing(section=section, page_name=page_name)
                for section, page_name in await self.sections.list_visible(user_id)
            ]
        page, _ = await self.access.require_page(user_id, page_id)
        return [
            SectionListing(section=section, page_name=page.name)
            for section in await self.sections.list_live_by_page(page.id)
        ]

    async def create_section(
        self,
        user_id: str,
        page_id: str,
        name: str,
        position: int | None = None,
    ) -> Section:
        """
        Append a section to a page.

        Raises:
            ValidationError: If the name is blank
            ConflictError: If an explicit position is held by a live section
        """
        name = self._require_text(name, "name")
        page, _ = await self.access.require_page(
            user_id, page_id, SECTION_WRITE, "create section",
        )
        if position is None:
            position = await self.sections.next_position(page.id)
        elif await self.sections.position_taken(page.id, position):
            raise ConflictError(f"Position {position} is already taken")

        section = await self._execute_db_operation(
            "create_section",
            self.sections.create(
                page_id=page.id,
                name=name,
                position=position,
                created_by_user_id=user_id,
            ),
        )
        self._log_operation("Section created", section_id=section.id, page_id=page.id)
        return section

    async def rename_section(self, user_id: str, section_id: str, name: str) -> Section:
        name = self._require_text(name, "name")
        section, _, _ = await self.access.require_section(
            user_id, section_id, SECTION_WRITE, "rename section",
        )
        section = await self._execute_db_operation(
            "rename_section",
            self.sections.update(section, name=name),
        )
        self._log_operation("Section renamed", section_id=section_id)
        return section

    async def move_section(self, user_id: str, section_id: str, page_id: str) -> Section:
        """
        Move a section, with its notes, to the end of another page.

        Needs section write rights on both the current and the target page.
        """
        section, source, _ = await self.access.require_section(
            user_id, section_id, SECTION_WRITE, "move section",
        )
        if page_id == source.id:
            return section
        target, _ = await self.access.require_page(
            user_id, page_id, SECTION_WRITE, "move section",
        )
        position = await self.sections.next_position(target.id)
        section = await self._execute_db_operation(
            "move_section",
            self.sections.update(section, page_id=target.id, position=position),
        )
        self._log_operation(
            "Section moved", section_id=section_id, from_page=source.id, to_page=target.id,
        )
        return section

    async def update_section(
        self,
        user_id: str,
        section_id: str,
        name: str | None = None,
        page_id: str | None = None,
    ) -> Section:
        """Rename and/or move a section. At least one change is required."""
        if name is None and page_id is None:
            raise ValidationError("Provide name or page_id", details={"missing_fields": ["name", "page_id"]})
        section = None
        if name is not None:
            section = await self.rename_section(user_id, section_id, name)
        if page_id is not None:
            section = await self.move_section(user_id, section_id, page_id)
        return section

    async def reorder_sections(
        self,
        user_id: str,
        page_id: str,
        section_ids: list[str],
    ) -> list[Section]:
        """Assign dense positions to the live sections of a page."""
        page, _ = await self.access.require_page(
            user_id, page_id, SECTION_WRITE, "reorder sections",
        )
        live = await self.sections.list_live_by_page(page.id)
        validate_order(section_ids, [section.id for section in live], "section")

        by_id = {section.id: section for section in live}
        for index, section_id in enumerate(section_ids):
            by_id[section_id].position = index
        await self._execute_db_operation("reorder_sections", self.session.flush())
        self._log_operation("Sections reordered", page_id=page_id, count=len(section_ids))
        return [by_id[section_id] for section_id in section_ids]

    async def delete_section(self, user_id: str, section_id: str) -> None:
        """Tombstone the section. Its notes are hidden by the ancestor rule."""
        section, _, _ = await self.access.require_section(
            user_id, section_id, SECTION_WRITE, "delete section",
        )
        await self._execute_db_operation(
            "delete_section",
            self.sections.update(section, deleted_at=utc_now()),
        )
        self._log_operation("Section deleted", section_id=section_id)
