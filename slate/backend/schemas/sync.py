"""
Sync Schemas.

Client snapshot accepted by the bulk reconcile, and its report.
Snapshot models ignore unknown fields because clients send back the
objects they received from the full load.
"""

from datetime import date as CalendarDate
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from slate.backend.schemas.box_config import BoxConfigResponse
from slate.backend.schemas.note import NoteResponse
from slate.backend.schemas.page import PageResponse
from slate.backend.schemas.section import SectionResponse


class _SnapshotBase(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SnapshotSection(_SnapshotBase):
    id: str = Field(min_length=1)
    name: str


class SnapshotPage(_SnapshotBase):
    id: str = Field(min_length=1)
    name: str
    starred: bool | None = None
    owner_user_id: str | None = None
    my_role: str | None = None
    sections: list[SnapshotSection] = Field(default_factory=list)


class SnapshotNote(_SnapshotBase):
    id: str = Field(min_length=1)
    section_id: str
    content: str
    tags: list[str] = Field(default_factory=list)
    date: CalendarDate | None = None
    completed: bool = False
    created_at: datetime | None = None


class SnapshotBoxConfig(_SnapshotBase):
    context_id: str
    config: dict[str, Any] = Field(default_factory=dict)


class SyncSnapshot(_SnapshotBase):
    """Full client state: owned pages with inlined sections, notes, view prefs."""

    pages: list[SnapshotPage] = Field(default_factory=list)
    notes: list[SnapshotNote] = Field(default_factory=list)
    box_configs: list[SnapshotBoxConfig] = Field(default_factory=list)


class ReconcileCounts(BaseModel):
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def changed(self) -> int:
        return self.inserted + self.updated + self.deleted


class ReconcileReport(BaseModel):
    """Per-kind outcome of a reconcile."""

    pages: ReconcileCounts = Field(default_factory=ReconcileCounts)
    sections: ReconcileCounts = Field(default_factory=ReconcileCounts)
    notes: ReconcileCounts = Field(default_factory=ReconcileCounts)
    box_configs: ReconcileCounts = Field(default_factory=ReconcileCounts)


class SyncPageResponse(PageResponse):
    sections: list[SectionResponse] = Field(default_factory=list)


class FullLoadResponse(BaseModel):
    """Everything a full-state client needs to render."""

    pages: list[SyncPageResponse]
    notes: list[NoteResponse]
    tags: list[str]
    box_configs: list[BoxConfigResponse]
