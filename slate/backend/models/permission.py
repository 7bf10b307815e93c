"""
Permission Model.

One row per (page, user) pair granting a role on a page the user does
not own.
"""

from enum import StrEnum

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from slate.backend.models.base import Base, TimestampMixin


class Role(StrEnum):
    OWNER = "owner"
    TEAM_ADMIN = "team-admin"
    TEAM = "team"
    TEAM_LIMITED = "team-limited"
    PUBLIC = "public"


class PermissionStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Permission(TimestampMixin, Base):
    """Permission database model."""

    __tablename__ = "permissions"

    page_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("pages.id"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=PermissionStatus.PENDING.value,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Permission(page_id={self.page_id}, user_id={self.user_id}, role={self.role})>"
