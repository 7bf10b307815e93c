"""
Box Config Service.

Per-user, per-context view preferences. The payload is opaque.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.models.box_config import BoxConfig
from slate.backend.repositories.box_config import BoxConfigRepository
from slate.backend.services.base import BaseService


class BoxConfigService(BaseService):
    """Service for view preferences."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.configs = BoxConfigRepository(session)

    async def list_configs(self, user_id: str) -> list[BoxConfig]:
        return await self.configs.list_by_user(user_id)

    async def save_config(self, user_id: str, context_id: str, config: dict[str, Any]) -> tuple[BoxConfig, bool]:
        """Upsert the config of one context. Returns the row and whether it changed."""
        context_id = self._require_text(context_id, "context_id")
        row, changed = await self._execute_db_operation(
            "save_box_config",
            self.configs.upsert(user_id, context_id, config),
        )
        if changed:
            self._log_debug("Box config saved", context_id=context_id)
        return row, changed
