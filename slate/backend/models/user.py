"""
User Model.

Users are owned by the external identity provider. A row is upserted the
first time a session token carrying an email is seen, so shared pages can
show their owner's email and grants can address users by email.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from slate.backend.core.utils import utc_now
from slate.backend.models.base import Base


class User(Base):
    """Known user, keyed by the identity provider's subject."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(
        String(320),
        unique=True,
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r})>"
