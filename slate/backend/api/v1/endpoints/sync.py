"""
Sync API Endpoints.

Full load and bulk reconcile for clients that keep the whole hierarchy
locally. Prefer the fine-grained endpoints for new clients.
"""

from fastapi import APIRouter, Depends

from slate.backend.core.config import get_app_config
from slate.backend.core.dependencies import CurrentPrincipal, DbSession
from slate.backend.core.exceptions import NotFoundError
from slate.backend.schemas.box_config import BoxConfigResponse
from slate.backend.schemas.note import NoteResponse
from slate.backend.schemas.page import PageResponse
from slate.backend.schemas.section import SectionResponse
from slate.backend.schemas.sync import (
    FullLoadResponse,
    ReconcileReport,
    SyncPageResponse,
    SyncSnapshot,
)
from slate.backend.services.sync import SyncService


def require_sync_enabled() -> None:
    if not get_app_config().features.sync_enabled:
        raise NotFoundError("Sync is disabled")


router = APIRouter(dependencies=[Depends(require_sync_enabled)])


@router.get(
    "",
    response_model=FullLoadResponse,
    summary="Full load",
    description="Visible pages with their sections, every visible note, tags and view preferences.",
)
async def full_load(db: DbSession, user_id: CurrentPrincipal) -> FullLoadResponse:
    load = await SyncService(db).load_all(user_id)
    pages = [
        SyncPageResponse(
            **PageResponse.from_listing(listing).model_dump(),
            sections=[
                SectionResponse.model_validate(section)
                for section in load.sections_by_page.get(listing.page.id, [])
            ],
        )
        for listing in load.pages
    ]
    return FullLoadResponse(
        pages=pages,
        notes=[NoteResponse.from_row(row) for row in load.notes],
        tags=load.tags,
        box_configs=[BoxConfigResponse.model_validate(c) for c in load.box_configs],
    )


@router.put(
    "",
    response_model=ReconcileReport,
    summary="Bulk reconcile",
    description=(
        "Converge the principal's owned pages, sections and notes to the snapshot. "
        "Rows owned by anyone else are skipped."
    ),
)
async def reconcile(data: SyncSnapshot, db: DbSession, user_id: CurrentPrincipal) -> ReconcileReport:
    return await SyncService(db).reconcile(user_id, data)
