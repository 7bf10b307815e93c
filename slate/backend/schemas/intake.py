"""
Intake Schemas.

Requests that drive the intake coordinator and the session view returned
by every intake endpoint.
"""

from typing import Any

from pydantic import BaseModel, Field

from slate.backend.intake.coordinator import IntakeState
from slate.backend.models.intake_session import IntakeSession
from slate.backend.schemas.base import RequestModel


class IntakeSubmit(RequestModel):
    utterance: str = Field(..., examples=["Marketing idea: launch on Tuesday #growth"])


class IntakeConfirm(RequestModel):
    accept: bool


class PlanDecisionRequest(RequestModel):
    decision: str = Field(..., examples=["yes"])
    utterance: str | None = Field(default=None, description="Follow-up for a revise decision")


class PendingCreation(BaseModel):
    """What the user is asked to confirm."""

    kind: str
    name: str | None


class PlanGroupView(BaseModel):
    index: int
    total: int
    id: str
    description: str
    preview: list[str]


class IntakeResponse(BaseModel):
    """The principal's intake session."""

    state: str
    utterance: str
    proposal: dict[str, Any] | None = None
    pending: PendingCreation | None = None
    plan: dict[str, Any] | None = None
    current_group: PlanGroupView | None = None
    results: list[dict[str, Any]] = Field(default_factory=list)
    error: dict[str, Any] | None = None
    current_page_id: str | None = None
    current_section_id: str | None = None

    @classmethod
    def from_session(cls, row: IntakeSession) -> "IntakeResponse":
        proposal = row.proposal or {}
        context = row.context or {}

        pending = None
        if row.state == IntakeState.NEEDS_PAGE_CONFIRM:
            pending = PendingCreation(kind="page", name=proposal.get("page"))
        elif row.state == IntakeState.NEEDS_SECTION_CONFIRM:
            pending = PendingCreation(kind="section", name=proposal.get("section"))

        current_group = None
        groups = (row.plan or {}).get("groups") or []
        if row.state == IntakeState.PLAN_CONFIRM and row.group_index < len(groups):
            group = groups[row.group_index]
            current_group = PlanGroupView(
                index=row.group_index,
                total=len(groups),
                id=group["id"],
                description=group["description"],
                preview=group.get("preview") or [],
            )

        return cls(
            state=row.state,
            utterance=row.utterance or "",
            proposal=row.proposal,
            pending=pending,
            plan=row.plan,
            current_group=current_group,
            results=row.results or [],
            error=row.error,
            current_page_id=context.get("current_page_id"),
            current_section_id=context.get("current_section_id"),
        )
