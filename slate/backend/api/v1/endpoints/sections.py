"""
Sections API Endpoints.
"""

from fastapi import APIRouter, Query

from slate.backend.core.dependencies import ApiKeyPrincipal, CurrentPrincipal, DbSession
from slate.backend.schemas.base import SuccessResponse
from slate.backend.schemas.section import (
    SectionCreate,
    SectionEnvelope,
    SectionListResponse,
    SectionOrder,
    SectionResponse,
    SectionUpdate,
)
from slate.backend.services.section import SectionService

router = APIRouter()


@router.get(
    "",
    response_model=SectionListResponse,
    summary="List sections",
    description="Sections of one page, or of every visible page when page_id is omitted.",
)
async def list_sections(
    db: DbSession,
    user_id: ApiKeyPrincipal,
    page_id: str | None = Query(default=None),
) -> SectionListResponse:
    listings = await SectionService(db).list_sections(user_id, page_id)
    sections = []
    for listing in listings:
        response = SectionResponse.model_validate(listing.section)
        response.page_name = listing.page_name
        sections.append(response)
    return SectionListResponse(sections=sections)


@router.post(
    "",
    response_model=SectionEnvelope,
    status_code=201,
    summary="Create a section",
)
async def create_section(data: SectionCreate, db: DbSession, user_id: ApiKeyPrincipal) -> SectionEnvelope:
    section = await SectionService(db).create_section(
        user_id,
        data.page_id,
        data.name,
        position=data.position,
    )
    return SectionEnvelope(section=SectionResponse.model_validate(section))


@router.put(
    "/order",
    response_model=SectionListResponse,
    summary="Reorder the sections of a page",
)
async def reorder_sections(data: SectionOrder, db: DbSession, user_id: CurrentPrincipal) -> SectionListResponse:
    sections = await SectionService(db).reorder_sections(user_id, data.page_id, data.section_ids)
    return SectionListResponse(sections=[SectionResponse.model_validate(s) for s in sections])


@router.patch(
    "/{section_id}",
    response_model=SectionEnvelope,
    summary="Rename or move a section",
    description="A new page_id moves the section, with its notes, to the end of that page.",
)
async def update_section(
    section_id: str,
    data: SectionUpdate,
    db: DbSession,
    user_id: CurrentPrincipal,
) -> SectionEnvelope:
    section = await SectionService(db).update_section(
        user_id, section_id, name=data.name, page_id=data.page_id,
    )
    return SectionEnvelope(section=SectionResponse.model_validate(section))


@router.delete(
    "/{section_id}",
    response_model=SuccessResponse,
    summary="Delete a section",
)
async def delete_section(section_id: str, db: DbSession, user_id: CurrentPrincipal) -> SuccessResponse:
    await SectionService(db).delete_section(user_id, section_id)
    return SuccessResponse()
