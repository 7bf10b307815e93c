"""
Intake API Endpoints.

Natural-language capture: submit an utterance, answer creation
confirmations and walk plan groups. Every route returns the session.
"""

from fastapi import APIRouter

from slate.backend.core.dependencies import CurrentPrincipal, DbSession
from slate.backend.intake.coordinator import IntakeCoordinator
from slate.backend.schemas.intake import (
    IntakeConfirm,
    IntakeResponse,
    IntakeSubmit,
    PlanDecisionRequest,
)

router = APIRouter()


@router.post(
    "",
    response_model=IntakeResponse,
    summary="Submit an utterance",
    description="Returns 409 while a previous utterance is still in flight.",
)
async def submit(data: IntakeSubmit, db: DbSession, user_id: CurrentPrincipal) -> IntakeResponse:
    row = await IntakeCoordinator(db).submit(user_id, data.utterance)
    return IntakeResponse.from_session(row)


@router.get("", response_model=IntakeResponse, summary="Current intake session")
async def get_session(db: DbSession, user_id: CurrentPrincipal) -> IntakeResponse:
    row = await IntakeCoordinator(db).get_session(user_id)
    return IntakeResponse.from_session(row)


@router.post(
    "/confirm",
    response_model=IntakeResponse,
    summary="Accept or reject a page or section creation",
)
async def confirm(data: IntakeConfirm, db: DbSession, user_id: CurrentPrincipal) -> IntakeResponse:
    row = await IntakeCoordinator(db).confirm(user_id, data.accept)
    return IntakeResponse.from_session(row)


@router.post(
    "/plan",
    response_model=IntakeResponse,
    summary="Decide on the current plan group",
    description="yes, revise (with an optional follow-up utterance), skip or cancel.",
)
async def decide(data: PlanDecisionRequest, db: DbSession, user_id: CurrentPrincipal) -> IntakeResponse:
    row = await IntakeCoordinator(db).decide(user_id, data.decision, data.utterance)
    return IntakeResponse.from_session(row)


@router.delete("", response_model=IntakeResponse, summary="Cancel the pending intake")
async def cancel(db: DbSession, user_id: CurrentPrincipal) -> IntakeResponse:
    row = await IntakeCoordinator(db).cancel(user_id)
    return IntakeResponse.from_session(row)
