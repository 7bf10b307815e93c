"""
Notes API Endpoints.

REST API endpoints for note management and the tag projection.
"""

from datetime import date
from typing import Any

from fastapi import APIRouter, Query

from slate.backend.core.dependencies import ApiKeyPrincipal, CurrentPrincipal, DbSession
from slate.backend.repositories.note import NoteFilter
from slate.backend.schemas.base import SuccessResponse
from slate.backend.schemas.note import (
    NoteCompletion,
    NoteCreate,
    NoteEnvelope,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
    TagListResponse,
)
from slate.backend.services.note import NoteService
from slate.backend.services.tags import TagService

router = APIRouter()
tags_router = APIRouter()


def _split_tags(tags: str | None) -> list[str]:
    return [tag for tag in (tags or "").split(",") if tag.strip()]


@router.get(
    "",
    response_model=NoteListResponse,
    summary="List notes",
    description="Visible notes, newest first. Tag filtering matches any of the listed tags.",
)
async def list_notes(
    db: DbSession,
    user_id: ApiKeyPrincipal,
    page_id: str | None = Query(default=None),
    section_id: str | None = Query(default=None),
    completed: bool | None = Query(default=None),
    tags: str | None = Query(default=None, description="Comma separated", examples=["urgent,growth"]),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    search: str | None = Query(default=None),
    limit: int | None = Query(default=None, description="Clamped to [1, 200]"),
) -> NoteListResponse:
    filters = NoteFilter(
        page_id=page_id,
        section_id=section_id,
        completed=completed,
        tags=_split_tags(tags),
        date_from=date_from,
        date_to=date_to,
        search=search or None,
        limit=limit,
    )
    rows = await NoteService(db).list_notes(user_id, filters)
    return NoteListResponse(notes=[NoteResponse.from_row(row) for row in rows], total=len(rows))


@router.post(
    "",
    response_model=NoteEnvelope,
    status_code=201,
    summary="Create a note",
)
async def create_note(data: NoteCreate, db: DbSession, user_id: ApiKeyPrincipal) -> NoteEnvelope:
    note = await NoteService(db).create_note(
        user_id,
        data.section_id,
        data.content,
        tags=data.tags,
        note_date=data.date,
    )
    return NoteEnvelope(note=NoteResponse.model_validate(note))


@router.patch(
    "/{note_id}",
    response_model=NoteEnvelope,
    summary="Edit or move a note",
    description="Only provided fields change. Sending date as null clears it.",
)
async def update_note(
    note_id: str,
    data: NoteUpdate,
    db: DbSession,
    user_id: CurrentPrincipal,
) -> NoteEnvelope:
    changes: dict[str, Any] = {}
    if "date" in data.model_fields_set:
        changes["note_date"] = data.date
    note = await NoteService(db).update_note(
        user_id,
        note_id,
        content=data.content,
        tags=data.tags,
        section_id=data.section_id,
        **changes,
    )
    return NoteEnvelope(note=NoteResponse.model_validate(note))


@router.post(
    "/{note_id}/completion",
    response_model=NoteEnvelope,
    summary="Mark a note complete or incomplete",
)
async def set_completion(
    note_id: str,
    data: NoteCompletion,
    db: DbSession,
    user_id: CurrentPrincipal,
) -> NoteEnvelope:
    note = await NoteService(db).set_completion(user_id, note_id, data.completed)
    return NoteEnvelope(note=NoteResponse.model_validate(note))


@router.delete(
    "/{note_id}",
    response_model=SuccessResponse,
    summary="Delete a note",
)
async def delete_note(note_id: str, db: DbSession, user_id: CurrentPrincipal) -> SuccessResponse:
    await NoteService(db).delete_note(user_id, note_id)
    return SuccessResponse()


@tags_router.get(
    "",
    response_model=TagListResponse,
    summary="List tags",
    description="Sorted unique tags of every visible note.",
)
async def list_tags(db: DbSession, user_id: ApiKeyPrincipal) -> TagListResponse:
    return TagListResponse(tags=await TagService(db).tag_projection(user_id))
