"""
Trash Service.

A view over soft-deleted rows under the principal's owned pages.

Only orphan-deleted rows are listed: a tombstoned row whose ancestors are
all live. Restore clears the target and every tombstoned descendant but
never an ancestor. Purge and empty-trash delete permanently, bottom-up.
"""

from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.exceptions import NotFoundError, ValidationError
from slate.backend.models.note import Note
from slate.backend.models.page import Page
from slate.backend.models.section import Section
from slate.backend.repositories.note import NoteRepository
from slate.backend.repositories.page import PageRepository
from slate.backend.repositories.permission import PermissionRepository
from slate.backend.repositories.section import SectionRepository
from slate.backend.services.base import BaseService

PREVIEW_LENGTH = 100


class TrashKind(StrEnum):
    PAGE = "page"
    SECTION = "section"
    NOTE = "note"


@dataclass
class DeletedSection:
    section: Section
    page_name: str


@dataclass
class DeletedNote:
    note: Note
    section_name: str
    page_name: str

    @property
    def preview(self) -> str:
        return self.note.content[:PREVIEW_LENGTH]


@dataclass
class TrashListing:
    pages: list[Page]
    sections: list[DeletedSection]
    notes: list[DeletedNote]


def parse_kind(kind: str) -> TrashKind:
    try:
        return TrashKind(kind)
    except ValueError as e:
        raise ValidationError(
            f"Unknown trash item type: {kind}",
            details={"allowed": [k.value for k in TrashKind]},
        ) from e


class TrashService(BaseService):
    """Service for listing, restoring and purging tombstoned rows."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.pages = PageRepository(session)
        self.sections = SectionRepository(session)
        self.notes = NoteRepository(session)
        self.permissions = PermissionRepository(session)

    async def list_deleted(self, user_id: str) -> TrashListing:
        """Orphan-deleted pages, sections and notes, newest deletion first."""
        pages = await self.pages.list_owned_deleted(user_id)
        sections = [
            DeletedSection(section=section, page_name=page_name)
            for section, page_name in await self.sections.list_orphan_deleted(user_id)
        ]
        notes = [
            DeletedNote(note=note, section_name=section_name, page_name=page_name)
            for note, section_name, page_name in await self.notes.list_orphan_deleted(user_id)
        ]
        return TrashListing(pages=pages, sections=sections, notes=notes)

    async def _load_owned(self, user_id: str, kind: TrashKind, item_id: str) -> Page | Section | Note:
        """
        Load a row inside the user's owned tree.

        Raises:
            NotFoundError: If the row is absent or under a page the user does not own
        """
        if kind == TrashKind.PAGE:
            row = await self.pages.get_by_id_or_none(item_id)
            owner_page = row
        elif kind == TrashKind.SECTION:
            row = await self.sections.get_by_id_or_none(item_id)
            owner_page = await self.pages.get_by_id_or_none(row.page_id) if row else None
        else:
            row = await self.notes.get_by_id_or_none(item_id)
            section = await self.sections.get_by_id_or_none(row.section_id) if row else None
            owner_page = await self.pages.get_by_id_or_none(section.page_id) if section else None

        if row is None or owner_page is None or owner_page.owner_user_id != user_id:
            raise NotFoundError(f"Deleted {kind.value} not found")
        return row

    async def _load_deleted(self, user_id: str, kind: TrashKind, item_id: str) -> Page | Section | Note:
        row = await self._load_owned(user_id, kind, item_id)
        if row.deleted_at is None:
            raise NotFoundError(f"Deleted {kind.value} not found")
        return row

    async def _subtree(
        self,
        kind: TrashKind,
        row: Page | Section | Note,
    ) -> tuple[list[Page], list[Section], list[Note]]:
        """The row and every descendant, tombstoned or not."""
        if kind == TrashKind.PAGE:
            sections = await self.sections.list_by_pages([row.id])
            notes = await self.notes.list_by_sections([s.id for s in sections])
            return [row], sections, notes
        if kind == TrashKind.SECTION:
            notes = await self.notes.list_by_sections([row.id])
            return [], [row], notes
        return [], [], [row]

    async def restore(self, user_id: str, kind: str, item_id: str) -> None:
        """Clear deleted_at on the target and on every tombstoned descendant."""
        trash_kind = parse_kind(kind)
        row = await self._load_deleted(user_id, trash_kind, item_id)
        pages, sections, notes = await self._subtree(trash_kind, row)

        restored = 0
        for item in [*pages, *sections, *notes]:
            if item.deleted_at is not None:
                item.deleted_at = None
                restored += 1

        await self._execute_db_operation("restore", self.session.flush())
        self._log_operation(
            "Trash item restored",
            kind=trash_kind.value,
            item_id=item_id,
            rows_restored=restored,
        )

    async def _purge_subtree(self, pages: list[Page], sections: list[Section], notes: list[Note]) -> None:
        for note in notes:
            await self.session.delete(note)
        await self.session.flush()
        for section in sections:
            await self.session.delete(section)
        await self.session.flush()
        await self.permissions.delete_by_pages([page.id for page in pages])
        for page in pages:
            await self.session.delete(page)
        await self.session.flush()

    async def purge(self, user_id: str, kind: str, item_id: str) -> None:
        """Permanently delete one tombstoned row and its descendants."""
        trash_kind = parse_kind(kind)
        row = await self._load_deleted(user_id, trash_kind, item_id)
        pages, sections, notes = await self._subtree(trash_kind, row)

        await self._execute_db_operation(
            "purge",
            self._purge_subtree(pages, sections, notes),
        )
        self._log_operation(
            "Trash item purged",
            kind=trash_kind.value,
            item_id=item_id,
            notes=len(notes),
            sections=len(sections),
        )

    async def empty_trash(self, user_id: str) -> int:
        """
        Purge every orphan-deleted subtree under the user's ownership.

        Returns the number of subtrees purged.
        """
        listing = await self.list_deleted(user_id)
        targets: list[tuple[TrashKind, Page | Section | Note]] = [
            *((TrashKind.NOTE, item.note) for item in listing.notes),
            *((TrashKind.SECTION, item.section) for item in listing.sections),
            *((TrashKind.PAGE, page) for page in listing.pages),
        ]

        for kind, row in targets:
            pages, sections, notes = await self._subtree(kind, row)
            await self._execute_db_operation(
                "empty_trash",
                self._purge_subtree(pages, sections, notes),
            )

        self._log_operation("Trash emptied", subtrees=len(targets))
        return len(targets)
