"""
Plan Executor.

Runs the actions of one confirmed plan group in declared order. Each
action is written in its own savepoint; a failing action is recorded and
the rest of the group carries on. Groups are not rolled back when a later
group fails or the plan is cancelled.
"""

from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.exceptions import ApplicationError, NotFoundError, ValidationError
from slate.backend.core.logging import get_logger
from slate.backend.intake.parser import PlanAction, PlanGroup
from slate.backend.models.page import Page
from slate.backend.models.section import Section
from slate.backend.repositories.page import PageRepository
from slate.backend.repositories.section import SectionRepository
from slate.backend.services.note import NoteService
from slate.backend.services.page import PageService
from slate.backend.services.section import SectionService

logger = get_logger(__name__)


def new_plan_context() -> dict[str, Any]:
    """Execution context carried across the groups of one plan."""
    return {
        "last_page_id": None,
        "last_section_id": None,
        "created_pages": [],
        "created_sections": [],
    }


def _match(name: str, rows: list[Page] | list[Section]) -> Page | Section | None:
    """First row whose name matches case-insensitively. Rows arrive in tie-break order."""
    wanted = name.casefold()
    for row in rows:
        if row.name.casefold() == wanted:
            return row
    return None


class PlanExecutor:
    """Executes plan groups on behalf of one principal."""

    def __init__(self, session: AsyncSession, user_id: str, note_service: NoteService) -> None:
        self.session = session
        self.user_id = user_id
        self.pages = PageRepository(session)
        self.sections = SectionRepository(session)
        self.page_service = PageService(session)
        self.section_service = SectionService(session)
        self.note_service = note_service

    async def run_group(self, group: PlanGroup, context: dict[str, Any]) -> dict[str, Any]:
        """
        Execute every action of the group.

        Returns a result record with succeeded and failed counts and one
        entry per action. The context is updated in place.
        """
        outcomes: list[dict[str, Any]] = []
        for action in group.actions:
            label = action.name or action.content or ""
            try:
                async with self.session.begin_nested():
                    created_id = await self._run_action(action, context)
            except (ApplicationError, SQLAlchemyError) as e:
                code = e.code if isinstance(e, ApplicationError) else "SYS_DATABASE_ERROR"
                logger.warning(
                    "Plan action failed",
                    extra={"group_id": group.id, "action": action.type, "error": str(e)},
                )
                outcomes.append({
                    "action": action.type,
                    "name": label,
                    "success": False,
                    "error": {"code": code, "message": str(e)},
                })
                continue
            outcomes.append({"action": action.type, "name": label, "success": True, "id": created_id})

        succeeded = sum(1 for outcome in outcomes if outcome["success"])
        return {
            "group_id": group.id,
            "status": "executed",
            "succeeded": succeeded,
            "failed": len(outcomes) - succeeded,
            "actions": outcomes,
        }

    async def _run_action(self, action: PlanAction, context: dict[str, Any]) -> str:
        if action.type == "create_page":
            page = await self.page_service.create_page(self.user_id, action.name or "")
            context["last_page_id"] = page.id
            context["created_pages"].append({"id": page.id, "name": page.name})
            return page.id

        if action.type == "create_section":
            page_id = await self._resolve_page(action.page_name, context)
            section = await self.section_service.create_section(self.user_id, page_id, action.name or "")
            context["last_section_id"] = section.id
            context["created_sections"].append({"id": section.id, "name": section.name, "page_id": page_id})
            return section.id

        section_id = await self._resolve_section(action.section_name, context)
        note = await self.note_service.create_note(
            self.user_id,
            section_id,
            action.content or "",
            tags=action.tags,
            note_date=action.date,
        )
        return note.id

    async def _resolve_page(self, page_name: str | None, context: dict[str, Any]) -> str:
        if page_name:
            page = _match(page_name, await self.pages.list_owned_live(self.user_id))
            if page is None:
                raise NotFoundError(f'Page "{page_name}" not found')
            return page.id
        if context.get("last_page_id"):
            return context["last_page_id"]
        raise ValidationError("No page specified for section")

    async def _resolve_section(self, section_name: str | None, context: dict[str, Any]) -> str:
        if section_name:
            for created in reversed(context.get("created_sections", [])):
                if created["name"].casefold() == section_name.casefold():
                    return created["id"]
            rows = [section for section, _ in await self.sections.list_visible(self.user_id)]
            section = _match(section_name, rows)
            if section is None:
                raise NotFoundError(f'Section "{section_name}" not found')
            return section.id
        if context.get("last_section_id"):
            return context["last_section_id"]
        raise ValidationError("No section specified for note")
