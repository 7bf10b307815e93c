"""
Note Repository.

Data access for notes. Every read joins the section and page so the
ancestor liveness and visibility rules are applied in one query.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.models.note import Note
from slate.backend.models.page import Page
from slate.backend.models.section import Section
from slate.backend.repositories.base import BaseRepository
from slate.backend.repositories.page import visible_page_clause


@dataclass
class NoteFilter:
    """Optional filters for note listing. Unset fields do not filter."""

    section_id: str | None = None
    page_id: str | None = None
    completed: bool | None = None
    tags: list[str] = field(default_factory=list)
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None
    limit: int | None = None


@dataclass
class NoteRow:
    """A visible note with the names of its ancestors."""

    note: Note
    section_name: str
    page_id: str
    page_name: str


class NoteRepository(BaseRepository[Note]):
    """Repository for Note model."""

    model = Note

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    def _visible_query(self, user_id: str) -> Select:
        return (
            select(Note, Section.name, Page.id, Page.name)
            .join(Section, Section.id == Note.section_id)
            .join(Page, Page.id == Section.page_id)
            .where(
                Note.deleted_at.is_(None),
                Section.deleted_at.is_(None),
                Page.deleted_at.is_(None),
                visible_page_clause(user_id),
            )
        )

    async def list_visible(self, user_id: str, filters: NoteFilter | None = None) -> list[NoteRow]:
        """
        Live notes visible to the user, newest first.

        The tag overlap test runs in Python because tags are a JSON
        column; the limit is applied after it.
        """
        filters = filters or NoteFilter()
        query = self._visible_query(user_id)

        if filters.section_id is not None:
            query = query.where(Note.section_id == filters.section_id)
        if filters.page_id is not None:
            query = query.where(Page.id == filters.page_id)
        if filters.completed is not None:
            query = query.where(Note.completed == filters.completed)
        if filters.date_from is not None:
            query = query.where(Note.created_at >= datetime.combine(filters.date_from, time.min))
        if filters.date_to is not None:
            end = datetime.combine(filters.date_to + timedelta(days=1), time.min)
            query = query.where(Note.created_at < end)
        if filters.search:
            query = query.where(Note.content.icontains(filters.search, autoescape=True))

        query = query.order_by(Note.created_at.desc(), Note.id.desc())
        if filters.limit is not None and not filters.tags:
            query = query.limit(filters.limit)

        result = await self.session.execute(query)
        rows = [
            NoteRow(note=note, section_name=section_name, page_id=page_id, page_name=page_name)
            for note, section_name, page_id, page_name in result.all()
        ]

        if filters.tags:
            wanted = set(filters.tags)
            rows = [row for row in rows if wanted.intersection(row.note.tags or [])]
            if filters.limit is not None:
                rows = rows[: filters.limit]
        return rows

    async def list_visible_tags(self, user_id: str) -> list[list[str]]:
        """Tag lists of every live note visible to the user."""
        result = await self.session.execute(
            select(Note.tags)
            .join(Section, Section.id == Note.section_id)
            .join(Page, Page.id == Section.page_id)
            .where(
                Note.deleted_at.is_(None),
                Section.deleted_at.is_(None),
                Page.deleted_at.is_(None),
                visible_page_clause(user_id),
            )
        )
        return [tags or [] for tags in result.scalars().all()]

    async def list_by_sections(self, section_ids: list[str]) -> list[Note]:
        """Every note of the given sections, tombstoned included."""
        if not section_ids:
            return []
        result = await self.session.execute(
            select(Note).where(Note.section_id.in_(section_ids))
        )
        return list(result.scalars().all())

    async def list_orphan_deleted(self, owner_user_id: str) -> list[tuple[Note, str, str]]:
        """
        Tombstoned notes whose section and page are live and owned by the user.

        Returns (note, section_name, page_name) tuples, newest deletion first.
        """
        result = await self.session.execute(
            select(Note, Section.name, Page.name)
            .join(Section, Section.id == Note.section_id)
            .join(Page, Page.id == Section.page_id)
            .where(
                Page.owner_user_id == owner_user_id,
                Page.deleted_at.is_(None),
                Section.deleted_at.is_(None),
                Note.deleted_at.is_not(None),
            )
            .order_by(Note.deleted_at.desc())
        )
        return [(note, section_name, page_name) for note, section_name, page_name in result.all()]
