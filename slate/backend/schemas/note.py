"""
Note Schemas.

Pydantic schemas for note API request/response validation.
"""

from datetime import date as CalendarDate
from datetime import datetime

from pydantic import BaseModel, Field

from slate.backend.repositories.note import NoteRow
from slate.backend.schemas.base import OrmModel, RequestModel


class NoteCreate(RequestModel):
    """Schema for creating a note."""

    content: str = Field(
        ...,
        description="Note content",
        examples=["Launch on Tuesday"],
    )
    section_id: str | None = Field(
        default=None,
        description="Target section; required",
    )
    tags: list[str] = Field(default_factory=list)
    date: CalendarDate | None = None


class NoteUpdate(RequestModel):
    """Schema for editing a note. Only provided fields change; date may be cleared with null."""

    content: str | None = None
    tags: list[str] | None = None
    date: CalendarDate | None = None
    section_id: str | None = None


class NoteCompletion(RequestModel):
    completed: bool


class NoteResponse(OrmModel):
    """Schema for a note in API responses."""

    id: str = Field(description="Note unique identifier")
    section_id: str
    content: str
    tags: list[str]
    date: CalendarDate | None
    completed: bool
    completed_by_user_id: str | None
    completed_at: datetime | None
    created_by_user_id: str
    created_at: datetime
    updated_at: datetime
    section_name: str | None = None
    page_id: str | None = None
    page_name: str | None = None

    @classmethod
    def from_row(cls, row: NoteRow) -> "NoteResponse":
        response = cls.model_validate(row.note)
        response.section_name = row.section_name
        response.page_id = row.page_id
        response.page_name = row.page_name
        return response


class NoteEnvelope(BaseModel):
    note: NoteResponse


class NoteListResponse(BaseModel):
    notes: list[NoteResponse]
    total: int


class TagListResponse(BaseModel):
    tags: list[str]
