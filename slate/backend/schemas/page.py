"""
Page Schemas.

Pydantic schemas for page API request/response validation.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from slate.backend.schemas.base import OrmModel, RequestModel
from slate.backend.services.page import PageListing


class PageCreate(RequestModel):
    """Schema for creating a page."""

    name: str = Field(
        ...,
        description="Page name",
        examples=["Marketing"],
    )
    position: int | None = Field(
        default=None,
        ge=0,
        description="Explicit position; appended when omitted",
    )
    starred: bool = False


class PageUpdate(RequestModel):
    """Schema for renaming or starring a page. Only provided fields change."""

    name: str | None = None
    starred: bool | None = None


class PageOrder(RequestModel):
    """Every live owned page ID, in the new order."""

    page_ids: list[str]


class PageResponse(OrmModel):
    """Schema for a page in API responses."""

    id: str = Field(description="Page unique identifier")
    name: str
    starred: bool
    position: int
    owner_user_id: str
    my_role: str = Field(default="owner", description="Principal's effective role")
    permission_status: str | None = None
    owner_email: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_listing(cls, listing: PageListing) -> "PageResponse":
        response = cls.model_validate(listing.page)
        response.my_role = listing.my_role
        response.permission_status = listing.permission_status
        response.owner_email = listing.owner_email
        return response


class PageEnvelope(BaseModel):
    page: PageResponse


class PageListResponse(BaseModel):
    pages: list[PageResponse]
