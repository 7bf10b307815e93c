"""
Trash Schemas.

Bodies use the camelCase keys the trash endpoints have always accepted.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from slate.backend.services.trash import DeletedNote, DeletedSection, TrashListing


class TrashRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    user_id: str = Field(..., alias="userId")


class TrashRestore(TrashRequest):
    type: str
    id: str = Field(..., min_length=1)


class DeletedPageResponse(BaseModel):
    id: str
    name: str
    deleted_at: datetime


class DeletedSectionResponse(BaseModel):
    id: str
    name: str
    page_id: str
    page_name: str
    deleted_at: datetime

    @classmethod
    def from_item(cls, item: DeletedSection) -> "DeletedSectionResponse":
        return cls(
            id=item.section.id,
            name=item.section.name,
            page_id=item.section.page_id,
            page_name=item.page_name,
            deleted_at=item.section.deleted_at,
        )


class DeletedNoteResponse(BaseModel):
    id: str
    preview: str
    section_id: str
    section_name: str
    page_name: str
    deleted_at: datetime

    @classmethod
    def from_item(cls, item: DeletedNote) -> "DeletedNoteResponse":
        return cls(
            id=item.note.id,
            preview=item.preview,
            section_id=item.note.section_id,
            section_name=item.section_name,
            page_name=item.page_name,
            deleted_at=item.note.deleted_at,
        )


class TrashListResponse(BaseModel):
    pages: list[DeletedPageResponse]
    sections: list[DeletedSectionResponse]
    notes: list[DeletedNoteResponse]

    @classmethod
    def from_listing(cls, listing: TrashListing) -> "TrashListResponse":
        return cls(
            pages=[
                DeletedPageResponse(id=page.id, name=page.name, deleted_at=page.deleted_at)
                for page in listing.pages
            ],
            sections=[DeletedSectionResponse.from_item(item) for item in listing.sections],
            notes=[DeletedNoteResponse.from_item(item) for item in listing.notes],
        )


class EmptyTrashResponse(BaseModel):
    success: bool = True
    purged: int
