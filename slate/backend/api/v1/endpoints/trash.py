"""
Trash API Endpoints.

Session-authenticated. The userId in the query or body must be the
principal.
"""

from typing import Annotated

from fastapi import APIRouter, Query

from slate.backend.core.dependencies import DbSession, SessionPrincipal
from slate.backend.core.exceptions import AuthorizationError
from slate.backend.schemas.base import SuccessResponse
from slate.backend.schemas.trash import (
    EmptyTrashResponse,
    TrashListResponse,
    TrashRequest,
    TrashRestore,
)
from slate.backend.services.trash import TrashService

router = APIRouter()


def _require_self(user_id: str, principal: str) -> None:
    if user_id != principal:
        raise AuthorizationError("Trash of another user is not accessible")


@router.get(
    "",
    response_model=TrashListResponse,
    summary="List deleted items",
    description="Orphan-deleted pages, sections and notes under the principal's pages.",
)
async def list_trash(
    db: DbSession,
    principal: SessionPrincipal,
    user_id: Annotated[str, Query(alias="userId")],
) -> TrashListResponse:
    _require_self(user_id, principal)
    listing = await TrashService(db).list_deleted(principal)
    return TrashListResponse.from_listing(listing)


@router.post(
    "",
    response_model=SuccessResponse,
    summary="Restore a deleted item",
    description="Restores the item and every deleted descendant.",
)
async def restore_item(data: TrashRestore, db: DbSession, principal: SessionPrincipal) -> SuccessResponse:
    _require_self(data.user_id, principal)
    await TrashService(db).restore(principal, data.type, data.id)
    return SuccessResponse()


@router.delete(
    "",
    response_model=EmptyTrashResponse,
    summary="Empty the trash",
)
async def empty_trash(data: TrashRequest, db: DbSession, principal: SessionPrincipal) -> EmptyTrashResponse:
    _require_self(data.user_id, principal)
    purged = await TrashService(db).empty_trash(principal)
    return EmptyTrashResponse(purged=purged)


@router.delete(
    "/{kind}/{item_id}",
    response_model=SuccessResponse,
    summary="Permanently delete one item",
)
async def purge_item(kind: str, item_id: str, db: DbSession, principal: SessionPrincipal) -> SuccessResponse:
    await TrashService(db).purge(principal, kind, item_id)
    return SuccessResponse()
