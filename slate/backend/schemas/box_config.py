"""
Box Config Schemas.

Per-context view preferences. The config payload is opaque to the server.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from slate.backend.schemas.base import OrmModel, RequestModel


class BoxConfigSave(RequestModel):
    context_id: str = Field(..., min_length=1, max_length=255)
    config: dict[str, Any]


class BoxConfigResponse(OrmModel):
    context_id: str
    config: dict[str, Any]
    updated_at: datetime


class BoxConfigEnvelope(BaseModel):
    box_config: BoxConfigResponse
    changed: bool


class BoxConfigListResponse(BaseModel):
    box_configs: list[BoxConfigResponse]
