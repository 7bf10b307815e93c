"""
Parse Service.

Turns a free-text utterance into a structured note proposal, or into a
multi-step plan of page, section and note creations.

The structured call goes through a PydanticAI agent wrapped by a circuit
breaker, the "llm" semaphore and a client-side timeout. The service is
advisory and never fails the caller: any error, timeout or open breaker
falls back to the deterministic parser.

Usage:
    from slate.backend.intake.parser import ParseContext, ParseService

    result = await ParseService().parse("Buy milk #errand", ParseContext())
"""

import asyncio
import re
from datetime import date as CalendarDate
from typing import Literal

import aiobreaker
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

from slate.backend.core.concurrency import get_semaphore
from slate.backend.core.config import get_app_config, get_settings
from slate.backend.core.logging import get_logger
from slate.backend.core.resilience import create_circuit_breaker
from slate.backend.core.utils import clean_text, normalize_tags

logger = get_logger(__name__)

TAG_PATTERN = re.compile(r"#(\w[\w-]*)")

SYSTEM_PROMPT = (
    "You turn a short free-text utterance into a note for a notes app "
    "organised as pages, which contain sections, which contain notes.\n\n"
    "Return:\n"
    "- content: the note body with routing words and #tags removed\n"
    "- tags: lowercase tags from #hashtags or clear topics; reuse existing tags when they fit\n"
    "- date: an ISO date (YYYY-MM-DD) when the utterance names a day, else null\n"
    "- page / section: the target names when the utterance names them\n"
    "- newPage: true only when the named page is not in the page list\n"
    "- newSection: true only when the named section is not in the section list\n"
    "- responseMessage: one short line confirming what will happen\n\n"
    "When the user asks to create pages or sections (one or many), return a plan "
    "instead: ordered groups, each with a description, its actions and one preview "
    "line per action. Action types are create_page {name}, create_section "
    "{name, pageName} and create_note {content, sectionName, tags, date}."
)

REVISE_PROMPT = (
    "You revise one group of a plan for a notes app. Apply the user's change to "
    "the group and return the whole group. Keep its id. Action types are "
    "create_page {name}, create_section {name, pageName} and create_note "
    "{content, sectionName, tags, date}."
)


# =============================================================================
# Output Schemas
# =============================================================================


class IntakeModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlanAction(IntakeModel):
    type: Literal["create_page", "create_section", "create_note"]
    name: str | None = None
    page_name: str | None = None
    section_name: str | None = None
    content: str | None = None
    tags: list[str] = Field(default_factory=list)
    date: CalendarDate | None = None

    def describe(self) -> str:
        if self.type == "create_page":
            return f"Create page {self.name}"
        if self.type == "create_section":
            where = f" in {self.page_name}" if self.page_name else ""
            return f"Create section {self.name}{where}"
        return f"Add note: {self.content}"


class PlanGroup(IntakeModel):
    """One confirmable step of a plan."""

    id: str
    description: str
    action_count: int = 0
    actions: list[PlanAction] = Field(default_factory=list)
    preview: list[str] = Field(default_factory=list)


class Plan(IntakeModel):
    groups: list[PlanGroup] = Field(default_factory=list)

    @property
    def total_actions(self) -> int:
        return sum(group.action_count for group in self.groups)


class ParseResult(IntakeModel):
    """Proposal for a single note write."""

    content: str = ""
    tags: list[str] = Field(default_factory=list)
    date: CalendarDate | None = None
    page: str | None = None
    section: str | None = None
    new_page: bool = False
    new_section: bool = False
    response_message: str = ""
    plan: Plan | None = None


class ParseContext(IntakeModel):
    """What the parser is told about the principal's workspace."""

    pages: list[str] = Field(default_factory=list)
    sections: list[str] = Field(default_factory=list)
    current_page: str | None = None
    current_section: str | None = None
    existing_tags: list[str] = Field(default_factory=list)


# =============================================================================
# Deterministic parsing
# =============================================================================


def fallback_parse(utterance: str) -> ParseResult:
    """Raw utterance as content, #tag tokens as tags, nothing else."""
    content = clean_text(utterance)
    return ParseResult(
        content=content,
        tags=normalize_tags(TAG_PATTERN.findall(content)),
        response_message="Saved as a note.",
    )


def _normalize_group(group: PlanGroup) -> PlanGroup:
    for action in group.actions:
        action.name = clean_text(action.name) or None
        action.page_name = clean_text(action.page_name) or None
        action.section_name = clean_text(action.section_name) or None
        action.content = clean_text(action.content) or None
        action.tags = normalize_tags(action.tags)
    group.action_count = len(group.actions)
    if len(group.preview) != group.action_count:
        group.preview = [action.describe() for action in group.actions]
    return group


def normalize_result(result: ParseResult, utterance: str, plan_mode: bool = True) -> ParseResult:
    """
    Make an agent proposal safe to act on.

    Content falls back to the utterance, tags are normalised and creation
    flags without a name are dropped. An empty plan becomes no plan.
    """
    result.content = clean_text(result.content) or clean_text(utterance)
    result.tags = normalize_tags(result.tags)
    result.page = clean_text(result.page) or None
    result.section = clean_text(result.section) or None
    result.new_page = result.new_page and result.page is not None
    result.new_section = result.new_section and result.section is not None
    result.response_message = clean_text(result.response_message)

    if result.plan is not None:
        groups = [_normalize_group(g) for g in result.plan.groups if g.actions]
        result.plan = Plan(groups=groups) if groups and plan_mode else None
    return result


def build_prompt(utterance: str, context: ParseContext) -> str:
    return (
        "CONTEXT:\n"
        f"- Pages: {', '.join(context.pages) or 'None'}\n"
        f"- Sections: {', '.join(context.sections) or 'None'}\n"
        f"- Tags: {', '.join(context.existing_tags) or 'None'}\n"
        f"- Current location: {context.current_page or 'None'}/{context.current_section or 'None'}\n"
        f"- Today: {CalendarDate.today().isoformat()}\n\n"
        f"UTTERANCE:\n{utterance}"
    )


# =============================================================================
# Agent Definition
# =============================================================================


_parse_agent: Agent[None, ParseResult] | None = None
_revise_agent: Agent[None, PlanGroup] | None = None
_breaker: aiobreaker.CircuitBreaker | None = None


def _model() -> OpenAIChatModel:
    model_name = get_app_config().intake.parser.model
    provider = OpenAIProvider(api_key=get_settings().openai_api_key)
    return OpenAIChatModel(model_name, provider=provider)


def _get_parse_agent() -> Agent[None, ParseResult]:
    """Lazy initialization; the agent is only created when first called."""
    global _parse_agent
    if _parse_agent is None:
        _parse_agent = Agent(_model(), output_type=ParseResult, instructions=SYSTEM_PROMPT)
    return _parse_agent


def _get_revise_agent() -> Agent[None, PlanGroup]:
    global _revise_agent
    if _revise_agent is None:
        _revise_agent = Agent(_model(), output_type=PlanGroup, instructions=REVISE_PROMPT)
    return _revise_agent


def _get_breaker() -> aiobreaker.CircuitBreaker:
    global _breaker
    if _breaker is None:
        config = get_app_config().intake.parser.circuit_breaker
        _breaker = create_circuit_breaker(
            "parser",
            fail_max=config.fail_max,
            timeout_duration=config.timeout_duration,
        )
    return _breaker


class ParseService:
    """Structured parsing with a deterministic fallback."""

    def __init__(
        self,
        parse_agent: Agent | None = None,
        revise_agent: Agent | None = None,
        breaker: aiobreaker.CircuitBreaker | None = None,
    ) -> None:
        app_config = get_app_config()
        self.timeout = app_config.intake.parser.timeout_seconds
        self.plan_mode = app_config.features.intake_plan_mode_enabled
        injected = parse_agent is not None or revise_agent is not None
        self.enabled = injected or (
            app_config.features.intake_llm_enabled and bool(get_settings().openai_api_key)
        )
        self._parse_agent = parse_agent
        self._revise_agent = revise_agent
        self._breaker = breaker

    @property
    def breaker(self) -> aiobreaker.CircuitBreaker:
        if self._breaker is None:
            self._breaker = _get_breaker()
        return self._breaker

    async def _call_agent(self, agent: Agent, prompt: str):
        async with get_semaphore("llm"):
            async with asyncio.timeout(self.timeout):
                result = await agent.run(prompt)
        return result.output

    async def parse(self, utterance: str, context: ParseContext) -> ParseResult:
        """Propose a note or a plan for the utterance. Never raises for upstream failures."""
        if not self.enabled:
            return fallback_parse(utterance)

        agent = self._parse_agent or _get_parse_agent()
        try:
            result = await self.breaker.call_async(
                self._call_agent, agent, build_prompt(utterance, context),
            )
        except aiobreaker.CircuitBreakerError:
            logger.warning("Parser circuit open, using fallback")
            return fallback_parse(utterance)
        except TimeoutError:
            logger.warning("Parser timed out, using fallback", extra={"timeout": self.timeout})
            return fallback_parse(utterance)
        except Exception as e:
            logger.warning(
                "Parser failed, using fallback",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return fallback_parse(utterance)

        return normalize_result(result, utterance, plan_mode=self.plan_mode)

    async def revise_group(self, group: PlanGroup, utterance: str, context: ParseContext) -> PlanGroup:
        """Apply a follow-up utterance to one plan group. On failure the group is returned unchanged."""
        if not self.enabled:
            return group

        agent = self._revise_agent or _get_revise_agent()
        prompt = (
            f"{build_prompt(utterance, context)}\n\n"
            f"GROUP:\n{group.model_dump_json(by_alias=True)}"
        )
        try:
            revised = await self.breaker.call_async(self._call_agent, agent, prompt)
        except Exception as e:
            logger.warning(
                "Plan revision failed, keeping group",
                extra={"group_id": group.id, "error": str(e)},
            )
            return group

        revised.id = group.id
        revised = _normalize_group(revised)
        return revised if revised.actions else group
