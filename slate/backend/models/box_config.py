"""
BoxConfig Model.

Per-user, per-context view preferences. The config payload is opaque.
"""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from slate.backend.models.base import Base, TimestampMixin


class BoxConfig(TimestampMixin, Base):
    """BoxConfig database model."""

    __tablename__ = "box_configs"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    context_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
