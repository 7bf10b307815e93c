"""
Intake Session Model.

The intake coordinator's state for one principal, persisted so the
confirmation handshake survives across requests. One row per user.
"""

from typing import Any

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from slate.backend.models.base import Base, TimestampMixin


class IntakeSession(TimestampMixin, Base):
    """Intake session database model."""

    __tablename__ = "intake_sessions"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    state: Mapped[str] = mapped_column(String(32), nullable=False)
    utterance: Mapped[str] = mapped_column(Text, default="", nullable=False)
    proposal: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    plan: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    group_index: Mapped[int] = mapped_column(default=0, nullable=False)
    results: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    context: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    error: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<IntakeSession(user_id={self.user_id}, state={self.state})>"
