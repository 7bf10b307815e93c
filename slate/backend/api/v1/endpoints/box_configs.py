"""
Box Config API Endpoints.

Per-context view preferences of the principal.
"""

from fastapi import APIRouter

from slate.backend.core.dependencies import CurrentPrincipal, DbSession
from slate.backend.schemas.box_config import (
    BoxConfigEnvelope,
    BoxConfigListResponse,
    BoxConfigResponse,
    BoxConfigSave,
)
from slate.backend.services.box_config import BoxConfigService

router = APIRouter()


@router.get("", response_model=BoxConfigListResponse, summary="List view preferences")
async def list_box_configs(db: DbSession, user_id: CurrentPrincipal) -> BoxConfigListResponse:
    configs = await BoxConfigService(db).list_configs(user_id)
    return BoxConfigListResponse(box_configs=[BoxConfigResponse.model_validate(c) for c in configs])


@router.put("", response_model=BoxConfigEnvelope, summary="Save one view preference")
async def save_box_config(data: BoxConfigSave, db: DbSession, user_id: CurrentPrincipal) -> BoxConfigEnvelope:
    row, changed = await BoxConfigService(db).save_config(user_id, data.context_id, data.config)
    return BoxConfigEnvelope(box_config=BoxConfigResponse.model_validate(row), changed=changed)
