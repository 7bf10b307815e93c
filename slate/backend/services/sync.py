"""
Sync Service.

Full load and bulk reconcile of a client that holds the whole hierarchy
locally.

The reconcile diffs the snapshot against the principal's owned rows:
snapshot-only rows are inserted, server-only rows are soft-deleted and
rows in both are updated in place, writing only attributes that differ.
Rows owned by anyone else are skipped even when the snapshot includes
them. Rows are matched against everything the principal owns, so a
row may move out of a container the same snapshot drops; tombstones
are written after every insert, update and move. Each row is written
in its own savepoint, so a failing row is counted and the rest carry
on. Re-running the same snapshot changes nothing.
"""

from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.exceptions import ApplicationError
from slate.backend.core.utils import clean_text, naive_utc, normalize_tags, utc_now
from slate.backend.models.box_config import BoxConfig
from slate.backend.models.note import Note
from slate.backend.models.page import Page
from slate.backend.models.permission import Role
from slate.backend.models.section import Section
from slate.backend.repositories.box_config import BoxConfigRepository
from slate.backend.repositories.note import NoteRepository, NoteRow
from slate.backend.repositories.page import PageRepository
from slate.backend.repositories.section import SectionRepository
from slate.backend.schemas.sync import (
    ReconcileCounts,
    ReconcileReport,
    SnapshotNote,
    SnapshotPage,
    SnapshotSection,
    SyncSnapshot,
)
from slate.backend.services.base import BaseService
from slate.backend.services.embeddings import EmbeddingSink, get_embedding_sink
from slate.backend.services.note import apply_completion
from slate.backend.services.page import PageListing, PageService
from slate.backend.services.tags import TagService

INSERTED = "inserted"
UPDATED = "updated"
DELETED = "deleted"


@dataclass
class FullLoad:
    pages: list[PageListing]
    sections_by_page: dict[str, list[Section]]
    notes: list[NoteRow]
    tags: list[str]
    box_configs: list[BoxConfig]


@dataclass
class _Existing:
    """
    Owned rows captured before any write.

    Hidden rows are tombstoned or sit under a tombstoned ancestor.
    """

    pages: dict[str, Page]
    sections: dict[str, Section]
    notes: dict[str, Note]
    hidden_sections: set[str] = field(default_factory=set)
    hidden_notes: set[str] = field(default_factory=set)


def _set_changed(row: Any, values: dict[str, Any]) -> bool:
    """Assign only the attributes that differ. Returns whether any did."""
    changed = False
    for key, value in values.items():
        if getattr(row, key) != value:
            setattr(row, key, value)
            changed = True
    return changed


class SyncService(BaseService):
    """Service for full load and bulk reconcile."""

    def __init__(self, session: AsyncSession, sink: EmbeddingSink | None = None) -> None:
        super().__init__(session)
        self.pages = PageRepository(session)
        self.sections = SectionRepository(session)
        self.notes = NoteRepository(session)
        self.box_configs = BoxConfigRepository(session)
        self.sink = sink if sink is not None else get_embedding_sink()

    # =========================================================================
    # Full load
    # =========================================================================

    async def load_all(self, user_id: str) -> FullLoad:
        """Visible page tree, every visible note, the tag projection and view prefs."""
        pages = await PageService(self.session).list_pages(user_id)
        sections_by_page: dict[str, list[Section]] = {listing.page.id: [] for listing in pages}
        for section, _ in await self.sections.list_visible(user_id):
            sections_by_page.setdefault(section.page_id, []).append(section)

        return FullLoad(
            pages=pages,
            sections_by_page=sections_by_page,
            notes=await self.notes.list_visible(user_id),
            tags=await TagService(self.session).tag_projection(user_id),
            box_configs=await self.box_configs.list_by_user(user_id),
        )

    # =========================================================================
    # Reconcile
    # =========================================================================

    async def _apply(
        self,
        counts: ReconcileCounts,
        kind: str,
        row_id: str,
        write: Awaitable[str | None],
    ) -> bool:
        """Run one row write in a savepoint. Returns False when the row failed."""
        try:
            async with self.session.begin_nested():
                outcome = await write
        except (SQLAlchemyError, ApplicationError) as e:
            counts.failed += 1
            self._logger.warning(
                "Reconcile row failed",
                extra={"kind": kind, "row_id": row_id, "error": str(e)},
            )
            return False
        if outcome is not None:
            setattr(counts, outcome, getattr(counts, outcome) + 1)
        return True

    @staticmethod
    def _owner_intent(
        user_id: str,
        snapshot_page: SnapshotPage,
        owned: Page | None,
        exists_elsewhere: bool,
    ) -> bool:
        """
        Whether the snapshot page may be written by this principal.

        An explicit non-owner role is never written. Without a role, an
        existing row must be owned by the principal; a new row must name
        no owner or the principal.
        """
        if snapshot_page.my_role is not None and snapshot_page.my_role != Role.OWNER:
            return False
        if owned is not None:
            return True
        if exists_elsewhere:
            return False
        return snapshot_page.owner_user_id in (None, user_id)

    async def _load_existing(self, user_id: str) -> _Existing:
        """Every owned page, section and note, tombstoned included."""
        pages = {page.id: page for page in await self.pages.list_owned(user_id)}
        sections = {s.id: s for s in await self.sections.list_by_pages(sorted(pages))}
        notes = {n.id: n for n in await self.notes.list_by_sections(sorted(sections))}
        existing = _Existing(pages=pages, sections=sections, notes=notes)
        existing.hidden_sections = {
            s.id for s in sections.values()
            if s.deleted_at is not None or pages[s.page_id].deleted_at is not None
        }
        existing.hidden_notes = {
            n.id for n in notes.values()
            if n.deleted_at is not None or n.section_id in existing.hidden_sections
        }
        return existing

    async def reconcile(self, user_id: str, snapshot: SyncSnapshot) -> ReconcileReport:
        """Converge the principal's owned rows to the snapshot."""
        report = ReconcileReport()
        self._log_operation(
            "Reconcile started",
            pages=len(snapshot.pages),
            notes=len(snapshot.notes),
        )

        existing = await self._load_existing(user_id)
        live_page_ids, doomed_pages = await self._reconcile_pages(
            user_id, snapshot, existing, report.pages,
        )
        live_section_ids, doomed_sections = await self._reconcile_sections(
            user_id, snapshot, live_page_ids, existing, report.sections,
        )
        embed, doomed_notes = await self._reconcile_notes(
            user_id, snapshot.notes, live_section_ids, existing, report.notes,
        )

        # Moves out of a container land before the container is tombstoned.
        for note in doomed_notes:
            await self._apply(report.notes, "note", note.id, self._soft_delete(note))
        for section in doomed_sections:
            await self._apply(report.sections, "section", section.id, self._soft_delete(section))
        for page in doomed_pages:
            await self._apply(report.pages, "page", page.id, self._soft_delete(page))

        await self._reconcile_box_configs(user_id, snapshot, report.box_configs)

        for note_id, content in embed:
            self.sink.notify(note_id, content)

        self._log_operation("Reconcile finished", **{
            kind: counts.model_dump() for kind, counts in report
        })
        return report

    async def _reconcile_pages(
        self,
        user_id: str,
        snapshot: SyncSnapshot,
        existing: _Existing,
        counts: ReconcileCounts,
    ) -> tuple[set[str], list[Page]]:
        """Returns the snapshot pages that are owned and live afterwards, and the pages to tombstone."""
        owned = existing.pages
        unknown = [p.id for p in snapshot.pages if p.id not in owned]
        elsewhere = set(await self.pages.get_many(unknown))

        snapshot_ids = {p.id for p in snapshot.pages}
        to_delete = [
            page for page_id, page in owned.items()
            if page.deleted_at is None and page_id not in snapshot_ids
        ]

        live: set[str] = set()
        position = 0
        seen: set[str] = set()
        for snapshot_page in snapshot.pages:
            if snapshot_page.id in seen:
                counts.skipped += 1
                continue
            seen.add(snapshot_page.id)

            current = owned.get(snapshot_page.id)
            if not self._owner_intent(user_id, snapshot_page, current, snapshot_page.id in elsewhere):
                counts.skipped += 1
                continue
            if current is not None and current.deleted_at is not None:
                # Tombstoned rows come back through the trash, not through sync.
                counts.skipped += 1
                continue

            ok = await self._apply(
                counts, "page", snapshot_page.id,
                self._write_page(user_id, snapshot_page, current, position),
            )
            position += 1
            if ok:
                live.add(snapshot_page.id)
        return live, to_delete

    async def _write_page(
        self,
        user_id: str,
        snapshot_page: SnapshotPage,
        existing: Page | None,
        position: int,
    ) -> str | None:
        name = clean_text(snapshot_page.name)
        if existing is None:
            await self.pages.create(
                id=snapshot_page.id,
                owner_user_id=user_id,
                name=self._require_text(name, "name"),
                starred=bool(snapshot_page.starred),
                position=position,
            )
            return INSERTED

        values: dict[str, Any] = {"name": self._require_text(name, "name"), "position": position}
        if snapshot_page.starred is not None:
            values["starred"] = snapshot_page.starred
        if _set_changed(existing, values):
            await self.session.flush()
            return UPDATED
        return None

    async def _soft_delete(self, row: Page | Section | Note) -> str:
        row.deleted_at = utc_now()
        await self.session.flush()
        return DELETED

    async def _reconcile_sections(
        self,
        user_id: str,
        snapshot: SyncSnapshot,
        live_page_ids: set[str],
        existing: _Existing,
        counts: ReconcileCounts,
    ) -> tuple[set[str], list[Section]]:
        """Returns the IDs of live sections under owned live pages afterwards, and the sections to tombstone."""
        snapshot_sections: list[tuple[str, int, SnapshotSection]] = []
        seen: set[str] = set()
        for snapshot_page in snapshot.pages:
            if snapshot_page.id not in live_page_ids:
                continue
            for index, snapshot_section in enumerate(snapshot_page.sections):
                if snapshot_section.id in seen:
                    counts.skipped += 1
                    continue
                seen.add(snapshot_section.id)
                snapshot_sections.append((snapshot_page.id, index, snapshot_section))

        mentioned = {s.id for p in snapshot.pages for s in p.sections}
        unknown = [s.id for _, _, s in snapshot_sections if s.id not in existing.sections]
        elsewhere = set(await self.sections.get_many(unknown))
        # Sections of a page tombstoned by this snapshot go with the page.
        to_delete = [
            section for section in existing.sections.values()
            if section.id not in existing.hidden_sections
            and section.page_id in live_page_ids
            and section.id not in mentioned
        ]

        live: set[str] = set()
        for page_id, index, snapshot_section in snapshot_sections:
            if snapshot_section.id in elsewhere or snapshot_section.id in existing.hidden_sections:
                counts.skipped += 1
                continue
            ok = await self._apply(
                counts, "section", snapshot_section.id,
                self._write_section(
                    user_id, page_id, index, snapshot_section,
                    existing.sections.get(snapshot_section.id),
                ),
            )
            if ok:
                live.add(snapshot_section.id)
        return live, to_delete

    async def _write_section(
        self,
        user_id: str,
        page_id: str,
        position: int,
        snapshot_section: SnapshotSection,
        existing: Section | None,
    ) -> str | None:
        name = self._require_text(snapshot_section.name, "name")
        if existing is None:
            await self.sections.create(
                id=snapshot_section.id,
                page_id=page_id,
                name=name,
                position=position,
                created_by_user_id=user_id,
            )
            return INSERTED
        if _set_changed(existing, {"name": name, "position": position, "page_id": page_id}):
            await self.session.flush()
            return UPDATED
        return None

    async def _reconcile_notes(
        self,
        user_id: str,
        snapshot_notes: list[SnapshotNote],
        live_section_ids: set[str],
        existing: _Existing,
        counts: ReconcileCounts,
    ) -> tuple[list[tuple[str, str]], list[Note]]:
        """
        Returns (note_id, content) pairs whose content is new or changed,
        and the notes to tombstone.
        """
        unique: list[SnapshotNote] = []
        seen: set[str] = set()
        for snapshot_note in snapshot_notes:
            if snapshot_note.id in seen:
                counts.skipped += 1
                continue
            seen.add(snapshot_note.id)
            unique.append(snapshot_note)

        unknown = [n.id for n in unique if n.id not in existing.notes]
        foreign_ids = set(await self.notes.get_many(unknown))
        to_delete = [
            note for note in existing.notes.values()
            if note.id not in existing.hidden_notes
            and note.section_id in live_section_ids
            and note.id not in seen
        ]

        embed: list[tuple[str, str]] = []
        for snapshot_note in unique:
            if (
                snapshot_note.section_id not in live_section_ids
                or snapshot_note.id in foreign_ids
                or snapshot_note.id in existing.hidden_notes
            ):
                counts.skipped += 1
                continue
            current = existing.notes.get(snapshot_note.id)
            before = current.content if current is not None else None
            content = clean_text(snapshot_note.content)
            ok = await self._apply(
                counts, "note", snapshot_note.id,
                self._write_note(user_id, snapshot_note, current),
            )
            if ok and content != before:
                embed.append((snapshot_note.id, content))
        return embed, to_delete

    async def _write_note(
        self,
        user_id: str,
        snapshot_note: SnapshotNote,
        existing: Note | None,
    ) -> str | None:
        content = self._require_text(snapshot_note.content, "content")
        tags = normalize_tags(snapshot_note.tags)
        if existing is None:
            values: dict[str, Any] = {
                "id": snapshot_note.id,
                "section_id": snapshot_note.section_id,
                "content": content,
                "tags": tags,
                "date": snapshot_note.date,
                "created_by_user_id": user_id,
                "completed": snapshot_note.completed,
                "completed_by_user_id": user_id if snapshot_note.completed else None,
                "completed_at": utc_now() if snapshot_note.completed else None,
            }
            if snapshot_note.created_at is not None:
                values["created_at"] = naive_utc(snapshot_note.created_at)
            await self.notes.create(**values)
            return INSERTED

        changed = _set_changed(existing, {
            "section_id": snapshot_note.section_id,
            "content": content,
            "tags": tags,
            "date": snapshot_note.date,
        })
        changed = apply_completion(existing, snapshot_note.completed, user_id) or changed
        if changed:
            await self.session.flush()
            return UPDATED
        return None

    async def _reconcile_box_configs(
        self,
        user_id: str,
        snapshot: SyncSnapshot,
        counts: ReconcileCounts,
    ) -> None:
        for item in snapshot.box_configs:
            context_id = clean_text(item.context_id)
            if not context_id:
                counts.skipped += 1
                continue
            await self._apply(
                counts, "box_config", context_id,
                self._write_box_config(user_id, context_id, item.config),
            )

    async def _write_box_config(self, user_id: str, context_id: str, config: dict[str, Any]) -> str | None:
        existed = await self.session.get(BoxConfig, (user_id, context_id)) is not None
        _, changed = await self.box_configs.upsert(user_id, context_id, config)
        if not changed:
            return None
        return UPDATED if existed else INSERTED
