"""
Section Schemas.

Pydantic schemas for section API request/response validation.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from slate.backend.schemas.base import OrmModel, RequestModel


class SectionCreate(RequestModel):
    """Schema for creating a section."""

    name: str = Field(..., description="Section name", examples=["Ideas"])
    page_id: str = Field(..., min_length=1)
    position: int | None = Field(default=None, ge=0)


class SectionUpdate(RequestModel):
    """Rename a section, move it to another page, or both."""

    name: str | None = None
    page_id: str | None = Field(default=None, min_length=1)


class SectionOrder(RequestModel):
    """Every live section ID of the page, in the new order."""

    page_id: str = Field(..., min_length=1)
    section_ids: list[str]


class SectionResponse(OrmModel):
    """Schema for a section in API responses."""

    id: str
    page_id: str
    name: str
    position: int
    page_name: str | None = None
    created_by_user_id: str | None = None
    created_at: datetime


class SectionEnvelope(BaseModel):
    section: SectionResponse


class SectionListResponse(BaseModel):
    sections: list[SectionResponse]
