"""
Page Model.

Top level of the hierarchy. A page has a single owner; other users reach
it through a Permission row.
"""

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from slate.backend.models.base import Base, SoftDeleteMixin, TimestampMixin, UUIDMixin


class Page(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Page database model."""

    __tablename__ = "pages"
    __table_args__ = (
        Index("ix_pages_owner_position", "owner_user_id", "position"),
    )

    owner_user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    starred: Mapped[bool] = mapped_column(default=False, nullable=False)
    position: Mapped[int] = mapped_column(default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Page(id={self.id}, name={self.name!r})>"
