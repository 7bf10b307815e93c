"""
Intake Coordinator.

Drives one principal's utterance from parsing to a stored note, pausing
for confirmation before a page or section is created, or walking a plan
group by group.

States:
    idle -> parsing -> needs_page_confirm? -> needs_section_confirm?
         -> writing -> done | cancelled | failed
    parsing -> plan_confirm -> ... -> done | cancelled

The session row is the only state and survives across requests. A submit
while a non-terminal session is fresher than the configured TTL is Busy.
Store errors while writing end the session in failed with the error code
and message kept; they are not raised to the caller. A parse interrupted
by cancellation also ends in failed before the cancellation propagates.
"""

import asyncio
import copy
from datetime import timedelta
from enum import StrEnum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.config import get_app_config
from slate.backend.core.exceptions import (
    ApplicationError,
    BusyError,
    ConflictError,
    InternalError,
    ValidationError,
)
from slate.backend.core.utils import utc_now
from slate.backend.intake.parser import ParseContext, ParseResult, ParseService, Plan
from slate.backend.intake.plan import PlanExecutor, new_plan_context
from slate.backend.models.intake_session import IntakeSession
from slate.backend.models.page import Page
from slate.backend.models.section import Section
from slate.backend.repositories.intake_session import IntakeSessionRepository
from slate.backend.repositories.section import SectionRepository
from slate.backend.services.base import BaseService
from slate.backend.services.embeddings import EmbeddingSink, get_embedding_sink
from slate.backend.services.note import NoteService
from slate.backend.services.page import PageService
from slate.backend.services.section import SectionService
from slate.backend.services.tags import TagService


class IntakeState(StrEnum):
    IDLE = "idle"
    PARSING = "parsing"
    NEEDS_PAGE_CONFIRM = "needs_page_confirm"
    NEEDS_SECTION_CONFIRM = "needs_section_confirm"
    PLAN_CONFIRM = "plan_confirm"
    WRITING = "writing"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_STATES = frozenset({
    IntakeState.IDLE,
    IntakeState.DONE,
    IntakeState.CANCELLED,
    IntakeState.FAILED,
})


class PlanDecision(StrEnum):
    YES = "yes"
    REVISE = "revise"
    SKIP = "skip"
    CANCEL = "cancel"


def _find_by_name(name: str | None, rows: list[Any]) -> Any | None:
    """First case-insensitive name match. Callers pass rows in tie-break order."""
    if not name:
        return None
    wanted = name.casefold()
    return next((row for row in rows if row.name.casefold() == wanted), None)


class IntakeCoordinator(BaseService):
    """Per-principal intake state machine."""

    def __init__(
        self,
        session: AsyncSession,
        parser: ParseService | None = None,
        sink: EmbeddingSink | None = None,
    ) -> None:
        super().__init__(session)
        self.sessions = IntakeSessionRepository(session)
        self.sections = SectionRepository(session)
        self.parser = parser if parser is not None else ParseService()
        self.sink = sink if sink is not None else get_embedding_sink()
        self.page_service = PageService(session)
        self.section_service = SectionService(session)
        self.note_service = NoteService(session, sink=self.sink)
        self.ttl = timedelta(seconds=get_app_config().intake.sessions.ttl_seconds)

    # =========================================================================
    # Session state
    # =========================================================================

    async def get_session(self, user_id: str) -> IntakeSession:
        """The principal's session; an unsaved idle one if none exists."""
        row = await self.sessions.get_for_user(user_id)
        if row is None:
            row = IntakeSession(
                user_id=user_id,
                state=IntakeState.IDLE.value,
                utterance="",
                group_index=0,
                results=[],
                context={},
            )
        return row

    def _is_active(self, row: IntakeSession) -> bool:
        if row.state in TERMINAL_STATES:
            return False
        updated = row.updated_at or row.created_at
        return updated is not None and utc_now() - updated < self.ttl

    def _set_context(self, row: IntakeSession, **values: Any) -> None:
        # JSON columns only persist on reassignment.
        row.context = {**(row.context or {}), **values}

    async def _transition(self, row: IntakeSession, state: IntakeState, **fields: Any) -> IntakeSession:
        previous = row.state
        row.state = state.value
        for key, value in fields.items():
            setattr(row, key, value)
        await self._execute_db_operation("save_intake_session", self.sessions.save(row))
        self._log_debug(
            "Intake state changed",
            from_state=previous,
            to_state=state.value,
        )
        return row

    def _fail(self, error: ApplicationError) -> dict[str, Any]:
        self._logger.info(
            "Intake write failed",
            extra={"code": error.code, "error": error.message},
        )
        return {"code": error.code, "message": error.message}

    # =========================================================================
    # Submit
    # =========================================================================

    async def submit(self, user_id: str, utterance: str) -> IntakeSession:
        """
        Parse an utterance and advance as far as possible without the user.

        Raises:
            ValidationError: If the utterance is blank
            BusyError: If another utterance is still in flight
        """
        utterance = self._require_text(utterance, "utterance")
        row = await self.sessions.get_for_user(user_id)
        if row is not None and self._is_active(row):
            raise BusyError()
        if row is not None and row.state not in TERMINAL_STATES:
            self._log_operation("Stale intake session reclaimed", state=row.state)
        if row is None:
            row = await self.get_session(user_id)

        await self._transition(
            row,
            IntakeState.PARSING,
            utterance=utterance,
            proposal=None,
            plan=None,
            group_index=0,
            results=[],
            error=None,
        )
        # The claim is visible to other requests before the slow parse.
        await self._execute_db_operation("claim_intake_session", self.session.commit())

        context = await self._parse_context(user_id, row)
        try:
            proposal = await self.parser.parse(utterance, context)
        except BaseException:
            # An interrupted parse must not hold the claim until the TTL lapses.
            await asyncio.shield(self._release_claim(row))
            raise
        await self._reconcile_flags(user_id, row, proposal)
        row.proposal = proposal.model_dump(mode="json", by_alias=True)
        self._log_operation(
            "Utterance parsed",
            new_page=proposal.new_page,
            new_section=proposal.new_section,
            plan_groups=len(proposal.plan.groups) if proposal.plan else 0,
        )

        if proposal.plan is not None:
            self._set_context(row, plan=new_plan_context())
            return await self._transition(
                row,
                IntakeState.PLAN_CONFIRM,
                plan=proposal.plan.model_dump(mode="json", by_alias=True),
            )
        if proposal.new_page:
            return await self._transition(row, IntakeState.NEEDS_PAGE_CONFIRM)
        if proposal.new_section:
            return await self._transition(row, IntakeState.NEEDS_SECTION_CONFIRM)
        return await self._write(user_id, row, proposal)

    async def _release_claim(self, row: IntakeSession) -> None:
        error = self._fail(InternalError("Parsing was interrupted"))
        await self._transition(row, IntakeState.FAILED, error=error)
        await self._execute_db_operation("release_intake_session", self.session.commit())

    async def _parse_context(self, user_id: str, row: IntakeSession) -> ParseContext:
        listings = await self.page_service.list_pages(user_id)
        visible_sections = await self.sections.list_visible(user_id)
        context = row.context or {}
        pages_by_id = {listing.page.id: listing.page for listing in listings}
        sections_by_id = {section.id: section for section, _ in visible_sections}

        current_page = pages_by_id.get(context.get("current_page_id"))
        current_section = sections_by_id.get(context.get("current_section_id"))
        return ParseContext(
            pages=[listing.page.name for listing in listings],
            sections=[f"{page_name}/{section.name}" for section, page_name in visible_sections],
            current_page=current_page.name if current_page else None,
            current_section=current_section.name if current_section else None,
            existing_tags=await TagService(self.session).tag_projection(user_id),
        )

    async def _reconcile_flags(self, user_id: str, row: IntakeSession, proposal: ParseResult) -> None:
        """Drop creation flags for names that already exist."""
        if proposal.new_page and await self._find_page(user_id, proposal.page) is not None:
            proposal.new_page = False
        if proposal.new_section and not proposal.new_page:
            page = await self._active_page(user_id, row, proposal)
            if page is not None and await self._find_section(page, proposal.section) is not None:
                proposal.new_section = False

    # =========================================================================
    # Resolution
    # =========================================================================

    async def _find_page(self, user_id: str, name: str | None) -> Page | None:
        """Visible live page by name; owned pages win over shared ones."""
        listings = await self.page_service.list_pages(user_id)
        return _find_by_name(name, [listing.page for listing in listings])

    async def _find_section(self, page: Page, name: str | None) -> Section | None:
        """Live section by name; lowest position then earliest creation wins."""
        return _find_by_name(name, await self.sections.list_live_by_page(page.id))

    async def _active_page(self, user_id: str, row: IntakeSession, proposal: ParseResult) -> Page | None:
        """The page the proposal names if it exists, else the focused page."""
        page = await self._find_page(user_id, proposal.page)
        if page is not None:
            return page
        current_id = (row.context or {}).get("current_page_id")
        if not current_id:
            return None
        listings = await self.page_service.list_pages(user_id)
        return next((listing.page for listing in listings if listing.page.id == current_id), None)

    # =========================================================================
    # Confirmation
    # =========================================================================

    async def confirm(self, user_id: str, accept: bool) -> IntakeSession:
        """
        Answer a pending page or section creation.

        Raises:
            ConflictError: If nothing is waiting for confirmation
        """
        row = await self.sessions.get_for_user(user_id)
        pending = (IntakeState.NEEDS_PAGE_CONFIRM, IntakeState.NEEDS_SECTION_CONFIRM)
        if row is None or row.state not in pending:
            raise ConflictError("No confirmation pending")

        proposal = ParseResult.model_validate(row.proposal or {})
        if not accept:
            self._log_operation("Intake creation rejected", state=row.state)
            return await self._transition(row, IntakeState.CANCELLED)

        try:
            async with self.session.begin_nested():
                if row.state == IntakeState.NEEDS_PAGE_CONFIRM:
                    focus = await self._create_confirmed_page(user_id, proposal)
                else:
                    focus = await self._create_confirmed_section(user_id, row, proposal)
        except ApplicationError as e:
            return await self._transition(row, IntakeState.FAILED, error=self._fail(e))

        self._set_context(row, **focus)
        return await self._write(user_id, row, proposal)

    async def _create_confirmed_page(self, user_id: str, proposal: ParseResult) -> dict[str, str | None]:
        page = await self.page_service.create_page(user_id, proposal.page or "")
        section_id = None
        if proposal.section:
            section = await self.section_service.create_section(user_id, page.id, proposal.section)
            section_id = section.id
        return {"current_page_id": page.id, "current_section_id": section_id}

    async def _create_confirmed_section(
        self,
        user_id: str,
        row: IntakeSession,
        proposal: ParseResult,
    ) -> dict[str, str | None]:
        page = await self._active_page(user_id, row, proposal)
        if page is None:
            raise ValidationError("No page to create the section in")
        section = await self.section_service.create_section(user_id, page.id, proposal.section or "")
        return {"current_page_id": page.id, "current_section_id": section.id}

    # =========================================================================
    # Writing
    # =========================================================================

    async def _resolve_section_id(self, user_id: str, row: IntakeSession, proposal: ParseResult) -> str | None:
        page = await self._active_page(user_id, row, proposal)
        if page is not None:
            section = await self._find_section(page, proposal.section)
            if section is not None:
                return section.id
        return (row.context or {}).get("current_section_id")

    async def _write(self, user_id: str, row: IntakeSession, proposal: ParseResult) -> IntakeSession:
        await self._transition(row, IntakeState.WRITING)
        try:
            async with self.session.begin_nested():
                section_id = await self._resolve_section_id(user_id, row, proposal)
                note = await self.note_service.create_note(
                    user_id,
                    section_id,
                    proposal.content,
                    tags=proposal.tags,
                    note_date=proposal.date,
                )
                note_id = note.id
                page_id = (await self.sections.get_by_id(note.section_id)).page_id
        except ApplicationError as e:
            return await self._transition(row, IntakeState.FAILED, error=self._fail(e))

        self._set_context(row, current_page_id=page_id, current_section_id=section_id)
        self._log_operation("Intake note written", note_id=note_id)
        return await self._transition(
            row,
            IntakeState.DONE,
            results=[{"note_id": note_id, "section_id": section_id}],
        )

    # =========================================================================
    # Plan mode
    # =========================================================================

    async def decide(self, user_id: str, decision: str, utterance: str | None = None) -> IntakeSession:
        """
        Apply a decision to the current plan group.

        Raises:
            ValidationError: If the decision is unknown
            ConflictError: If no plan is waiting for a decision
        """
        try:
            choice = PlanDecision(decision.strip().lower())
        except ValueError as e:
            raise ValidationError(
                f"Unknown plan decision: {decision}",
                details={"allowed": [d.value for d in PlanDecision]},
            ) from e

        row = await self.sessions.get_for_user(user_id)
        if row is None or row.state != IntakeState.PLAN_CONFIRM:
            raise ConflictError("No plan pending")

        plan = Plan.model_validate(row.plan or {})
        index = row.group_index
        group = plan.groups[index]

        if choice == PlanDecision.CANCEL:
            self._log_operation("Plan cancelled", completed_groups=index)
            return await self._transition(row, IntakeState.CANCELLED)

        if choice == PlanDecision.REVISE:
            if utterance and utterance.strip():
                context = await self._parse_context(user_id, row)
                plan.groups[index] = await self.parser.revise_group(group, utterance.strip(), context)
                row.plan = plan.model_dump(mode="json", by_alias=True)
                self._log_operation("Plan group revised", group_id=group.id)
            return await self._transition(row, IntakeState.PLAN_CONFIRM)

        if choice == PlanDecision.SKIP:
            record = {"group_id": group.id, "status": "skipped", "succeeded": 0, "failed": 0, "actions": []}
        else:
            context = copy.deepcopy((row.context or {}).get("plan") or new_plan_context())
            executor = PlanExecutor(self.session, user_id, self.note_service)
            record = await executor.run_group(group, context)
            self._set_context(row, plan=context)
            if context.get("last_page_id"):
                self._set_context(row, current_page_id=context["last_page_id"])
            if context.get("last_section_id"):
                self._set_context(row, current_section_id=context["last_section_id"])
            self._log_operation(
                "Plan group executed",
                group_id=group.id,
                succeeded=record["succeeded"],
                failed=record["failed"],
            )

        next_index = index + 1
        next_state = IntakeState.DONE if next_index >= len(plan.groups) else IntakeState.PLAN_CONFIRM
        return await self._transition(
            row,
            next_state,
            group_index=next_index,
            results=[*(row.results or []), record],
        )

    # =========================================================================
    # Cancel
    # =========================================================================

    async def cancel(self, user_id: str) -> IntakeSession:
        """Abandon whatever is pending. Terminal sessions are returned unchanged."""
        row = await self.sessions.get_for_user(user_id)
        if row is None or row.state in TERMINAL_STATES:
            return row if row is not None else await self.get_session(user_id)
        self._log_operation("Intake cancelled", state=row.state)
        return await self._transition(row, IntakeState.CANCELLED)
