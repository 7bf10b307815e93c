"""
Pages API Endpoints.

Listing, creation, rename, star, reorder, soft delete and sharing of
pages.
"""

from fastapi import APIRouter

from slate.backend.core.dependencies import ApiKeyPrincipal, CurrentPrincipal, DbSession
from slate.backend.schemas.base import SuccessResponse
from slate.backend.schemas.page import (
    PageCreate,
    PageEnvelope,
    PageListResponse,
    PageOrder,
    PageResponse,
    PageUpdate,
)
from slate.backend.schemas.sharing import (
    InvitationAnswer,
    PermissionEnvelope,
    PermissionGrant,
    PermissionListResponse,
    PermissionResponse,
)
from slate.backend.services.access import AccessService
from slate.backend.services.page import PageListing, PageService
from slate.backend.services.sharing import PermissionListing, SharingService

router = APIRouter()


async def _listing(db: DbSession, user_id: str, page_id: str) -> PageResponse:
    """The page as the principal sees it after a write."""
    for listing in await PageService(db).list_pages(user_id):
        if listing.page.id == page_id:
            return PageResponse.from_listing(listing)
    page, role = await AccessService(db).require_page(user_id, page_id)
    return PageResponse.from_listing(PageListing(page=page, my_role=role.value))


@router.get(
    "",
    response_model=PageListResponse,
    summary="List pages",
    description="Owned pages first, then pages shared with the principal.",
)
async def list_pages(db: DbSession, user_id: ApiKeyPrincipal) -> PageListResponse:
    listings = await PageService(db).list_pages(user_id)
    return PageListResponse(pages=[PageResponse.from_listing(listing) for listing in listings])


@router.post(
    "",
    response_model=PageEnvelope,
    status_code=201,
    summary="Create a page",
)
async def create_page(data: PageCreate, db: DbSession, user_id: ApiKeyPrincipal) -> PageEnvelope:
    page = await PageService(db).create_page(
        user_id,
        data.name,
        position=data.position,
        starred=data.starred,
    )
    return PageEnvelope(page=PageResponse.from_listing(PageListing(page=page, my_role="owner")))


@router.put(
    "/order",
    response_model=PageListResponse,
    summary="Reorder owned pages",
)
async def reorder_pages(data: PageOrder, db: DbSession, user_id: CurrentPrincipal) -> PageListResponse:
    pages = await PageService(db).reorder_pages(user_id, data.page_ids)
    return PageListResponse(
        pages=[PageResponse.from_listing(PageListing(page=page, my_role="owner")) for page in pages]
    )


@router.patch(
    "/{page_id}",
    response_model=PageEnvelope,
    summary="Rename or star a page",
)
async def update_page(
    page_id: str,
    data: PageUpdate,
    db: DbSession,
    user_id: CurrentPrincipal,
) -> PageEnvelope:
    await PageService(db).update_page(user_id, page_id, name=data.name, starred=data.starred)
    return PageEnvelope(page=await _listing(db, user_id, page_id))


@router.delete(
    "/{page_id}",
    response_model=SuccessResponse,
    summary="Delete a page",
    description="Tombstone the page. It can be restored from the trash.",
)
async def delete_page(page_id: str, db: DbSession, user_id: CurrentPrincipal) -> SuccessResponse:
    await PageService(db).delete_page(user_id, page_id)
    return SuccessResponse()


@router.get(
    "/{page_id}/permissions",
    response_model=PermissionListResponse,
    summary="List page permissions",
)
async def list_permissions(page_id: str, db: DbSession, user_id: CurrentPrincipal) -> PermissionListResponse:
    listings = await SharingService(db).list_permissions(user_id, page_id)
    return PermissionListResponse(
        permissions=[PermissionResponse.from_listing(listing) for listing in listings]
    )


@router.put(
    "/{page_id}/permissions",
    response_model=PermissionEnvelope,
    summary="Grant a role on a page",
)
async def grant_permission(
    page_id: str,
    data: PermissionGrant,
    db: DbSession,
    user_id: CurrentPrincipal,
) -> PermissionEnvelope:
    listing = await SharingService(db).grant(
        user_id,
        page_id,
        data.role,
        grantee_id=data.user_id,
        email=data.email,
    )
    return PermissionEnvelope(permission=PermissionResponse.from_listing(listing))


@router.delete(
    "/{page_id}/permissions/{grantee_id}",
    response_model=SuccessResponse,
    summary="Revoke a role on a page",
)
async def revoke_permission(
    page_id: str,
    grantee_id: str,
    db: DbSession,
    user_id: CurrentPrincipal,
) -> SuccessResponse:
    await SharingService(db).revoke(user_id, page_id, grantee_id)
    return SuccessResponse()


@router.post(
    "/{page_id}/invitation",
    response_model=PermissionEnvelope,
    summary="Accept or decline a share invitation",
)
async def answer_invitation(
    page_id: str,
    data: InvitationAnswer,
    db: DbSession,
    user_id: CurrentPrincipal,
) -> PermissionEnvelope:
    permission = await SharingService(db).respond(user_id, page_id, data.accept)
    return PermissionEnvelope(
        permission=PermissionResponse.from_listing(PermissionListing(permission=permission, email=None))
    )
