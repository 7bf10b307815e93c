"""
API Key Model.

Only the SHA-256 digest of a key is stored. The plain key is shown once
at issuance.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from slate.backend.core.utils import utc_now
from slate.backend.models.base import Base, UUIDMixin


class ApiKey(UUIDMixin, Base):
    """API key database model."""

    __tablename__ = "api_keys"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    key_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def __repr__(self) -> str:
        return f"<ApiKey(id={self.id}, name={self.name!r})>"
