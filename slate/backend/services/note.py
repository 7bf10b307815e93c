"""
Note Service.

Read and write paths for notes. Content-changing writes notify the
embedding sink.
"""

from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.config import get_app_config
from slate.backend.core.exceptions import AuthorizationError
from slate.backend.core.utils import normalize_tags, utc_now
from slate.backend.models.note import Note
from slate.backend.repositories.note import NoteFilter, NoteRepository, NoteRow
from slate.backend.repositories.page import PageRepository
from slate.backend.services.access import NOTE_COMPLETE, NOTE_CREATE, AccessService
from slate.backend.services.base import BaseService
from slate.backend.services.embeddings import EmbeddingSink, get_embedding_sink

_UNSET = object()


def clamp_limit(limit: int | None) -> int:
    """Clamp a requested note limit into [1, max_limit]; None means the default."""
    notes_config = get_app_config().application.notes
    if limit is None:
        return notes_config.default_limit
    return max(1, min(limit, notes_config.max_limit))


def apply_completion(note: Note, completed: bool, user_id: str) -> bool:
    """
    Set the completion flag keeping completed_by_user_id and completed_at in step.

    Returns whether anything changed.
    """
    if completed == note.completed and (
        not completed or (note.completed_by_user_id and note.completed_at)
    ):
        return False
    note.completed = completed
    if completed:
        note.completed_by_user_id = user_id
        note.completed_at = utc_now()
    else:
        note.completed_by_user_id = None
        note.completed_at = None
    return True


class NoteService(BaseService):
    """Service for note business logic."""

    def __init__(self, session: AsyncSession, sink: EmbeddingSink | None = None) -> None:
        super().__init__(session)
        self.notes = NoteRepository(session)
        self.pages = PageRepository(session)
        self.access = AccessService(session)
        self.sink = sink if sink is not None else get_embedding_sink()

    async def list_notes(self, user_id: str, filters: NoteFilter | None = None) -> list[NoteRow]:
        """
        Visible notes, newest first.

        A section_id or page_id filter must name something the user can see.
        Returned rows are checked against the visible page set and the read
        fails closed on any mismatch.
        """
        filters = filters or NoteFilter()
        filters.limit = clamp_limit(filters.limit)
        filters.tags = normalize_tags(filters.tags)
        if filters.page_id is not None:
            await self.access.require_page(user_id, filters.page_id)
        if filters.section_id is not None:
            await self.access.require_section(user_id, filters.section_id)

        rows = await self.notes.list_visible(user_id, filters)

        visible = await self.pages.list_visible_live_ids(user_id)
        leaked = [row.note.id for row in rows if row.page_id not in visible]
        if leaked:
            self._logger.error(
                "Note read returned rows outside the visible set",
                extra={"note_ids": leaked},
            )
            raise AuthorizationError("Read denied")
        return rows

    async def create_note(
        self,
        user_id: str,
        section_id: str | None,
        content: str,
        tags: list[str] | None = None,
        note_date: date | None = None,
    ) -> Note:
        """
        Create a note in a section the user may write to.

        Raises:
            ValidationError: If content or section_id is missing
        """
        self._validate_required({"section_id": section_id}, ["section_id"])
        content = self._require_text(content, "content")
        section, page, _ = await self.access.require_section(
            user_id, section_id, NOTE_CREATE, "create note",
        )

        note = await self._execute_db_operation(
            "create_note",
            self.notes.create(
                section_id=section.id,
                content=content,
                tags=normalize_tags(tags),
                date=note_date,
                completed=False,
                created_by_user_id=user_id,
            ),
        )
        self._log_operation("Note created", note_id=note.id, section_id=section.id)
        self.sink.notify(note.id, note.content)
        return note

    async def update_note(
        self,
        user_id: str,
        note_id: str,
        content: str | None = None,
        tags: list[str] | None = None,
        note_date: date | None | object = _UNSET,
        section_id: str | None = None,
    ) -> Note:
        """
        Edit content, tags, date, or move the note to another section.

        Own notes need owner, team-admin or team; other notes need owner
        or team-admin. A move also needs create rights on the target.
        """
        note, _, _, role = await self.access.require_note(user_id, note_id)
        self.access.ensure_note_write(user_id, note, role, "edit note")

        changes: dict[str, object] = {}
        if content is not None:
            cleaned = self._require_text(content, "content")
            if cleaned != note.content:
                changes["content"] = cleaned
        if tags is not None:
            normalized = normalize_tags(tags)
            if normalized != note.tags:
                changes["tags"] = normalized
        if note_date is not _UNSET and note_date != note.date:
            changes["date"] = note_date
        if section_id is not None and section_id != note.section_id:
            target, _, _ = await self.access.require_section(
                user_id, section_id, NOTE_CREATE, "move note",
            )
            changes["section_id"] = target.id

        if not changes:
            return note

        note = await self._execute_db_operation(
            "update_note",
            self.notes.update(note, **changes),
        )
        self._log_operation("Note updated", note_id=note.id, fields=sorted(changes))
        if "content" in changes:
            self.sink.notify(note.id, note.content)
        return note

    async def set_completion(self, user_id: str, note_id: str, completed: bool) -> Note:
        """Toggle completion. Any role except public may do this on any visible note."""
        note, _, _, role = await self.access.require_note(user_id, note_id)
        self.access.ensure_role(role, NOTE_COMPLETE, "complete note")

        if apply_completion(note, completed, user_id):
            await self._execute_db_operation("set_completion", self.session.flush())
            self._log_operation("Note completion changed", note_id=note.id, completed=completed)
        return note

    async def delete_note(self, user_id: str, note_id: str) -> None:
        """Tombstone the note."""
        note, _, _, role = await self.access.require_note(user_id, note_id)
        self.access.ensure_note_write(user_id, note, role, "delete note")
        await self._execute_db_operation(
            "delete_note",
            self.notes.update(note, deleted_at=utc_now()),
        )
        self._log_operation("Note deleted", note_id=note_id)
