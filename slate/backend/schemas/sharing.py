"""
Sharing Schemas.

Page permissions and invitation answers.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from slate.backend.schemas.base import RequestModel
from slate.backend.services.sharing import PermissionListing


class PermissionGrant(RequestModel):
    """Grant a role by user id or by email."""

    role: str = Field(..., examples=["team"])
    user_id: str | None = None
    email: str | None = None


class InvitationAnswer(RequestModel):
    accept: bool


class PermissionResponse(BaseModel):
    page_id: str
    user_id: str
    email: str | None = None
    role: str
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_listing(cls, listing: PermissionListing) -> "PermissionResponse":
        permission = listing.permission
        return cls(
            page_id=permission.page_id,
            user_id=permission.user_id,
            email=listing.email,
            role=permission.role,
            status=permission.status,
            created_at=permission.created_at,
            updated_at=permission.updated_at,
        )


class PermissionEnvelope(BaseModel):
    permission: PermissionResponse


class PermissionListResponse(BaseModel):
    permissions: list[PermissionResponse]
