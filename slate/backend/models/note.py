"""
Note Model.

Leaf of the hierarchy. Tags are stored normalised as a JSON list; the
tag set of a user is derived from live notes and never stored.
"""

from datetime import date as CalendarDate
from datetime import datetime

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from slate.backend.models.base import Base, SoftDeleteMixin, TimestampMixin, UUIDMixin


class Note(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    Note database model.

    completed is true exactly when completed_by_user_id and completed_at
    are both set.
    """

    __tablename__ = "notes"
    __table_args__ = (
        Index("ix_notes_section_created", "section_id", "created_at"),
    )

    section_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sections.id"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    date: Mapped[CalendarDate | None] = mapped_column(Date, nullable=True)
    completed: Mapped[bool] = mapped_column(default=False, nullable=False)
    completed_by_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_by_user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, section_id={self.section_id})>"
