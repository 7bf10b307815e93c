"""
Section Model.

Child of exactly one page, ordered by position within it.
"""

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from slate.backend.models.base import Base, SoftDeleteMixin, TimestampMixin, UUIDMixin


class Section(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Section database model."""

    __tablename__ = "sections"
    __table_args__ = (
        Index("ix_sections_page_position", "page_id", "position"),
    )

    page_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("pages.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(default=0, nullable=False)
    created_by_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<Section(id={self.id}, name={self.name!r})>"
