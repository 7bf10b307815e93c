"""
Tag Projection.

The tag set is derived from live visible notes on every call. Nothing is
stored or cached, so it can never drift from the notes.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.utils import normalize_tags
from slate.backend.repositories.note import NoteRepository
from slate.backend.services.base import BaseService


class TagService(BaseService):
    """Service computing the tag projection."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.notes = NoteRepository(session)

    async def tag_projection(self, user_id: str) -> list[str]:
        """Sorted unique tags across every note visible to the user."""
        tags: set[str] = set()
        for note_tags in await self.notes.list_visible_tags(user_id):
            tags.update(normalize_tags(note_tags))
        return sorted(tags)
