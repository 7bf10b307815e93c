"""
API Key Endpoints.

Issuance and management of API keys. Every route needs a session bearer
token; an API key can never mint another key.
"""

from fastapi import APIRouter

from slate.backend.core.dependencies import DbSession, SessionPrincipal
from slate.backend.schemas.api_key import (
    ApiKeyCreate,
    ApiKeyIssued,
    ApiKeyListResponse,
    ApiKeyResponse,
)
from slate.backend.services.identity import IdentityService

router = APIRouter()


@router.post(
    "",
    response_model=ApiKeyIssued,
    status_code=201,
    summary="Issue an API key",
    description="Create a key. The plain key is returned exactly once.",
)
async def issue_key(
    data: ApiKeyCreate,
    db: DbSession,
    user_id: SessionPrincipal,
) -> ApiKeyIssued:
    issued = await IdentityService(db).issue_key(user_id, data.name)
    return ApiKeyIssued(
        id=issued.api_key.id,
        name=issued.api_key.name,
        key=issued.plain_key,
        created_at=issued.api_key.created_at,
    )


@router.get(
    "",
    response_model=ApiKeyListResponse,
    summary="List API keys",
)
async def list_keys(db: DbSession, user_id: SessionPrincipal) -> ApiKeyListResponse:
    keys = await IdentityService(db).list_keys(user_id)
    return ApiKeyListResponse(keys=[ApiKeyResponse.model_validate(key) for key in keys])


@router.delete(
    "/{key_id}",
    response_model=ApiKeyResponse,
    summary="Revoke an API key",
)
async def revoke_key(key_id: str, db: DbSession, user_id: SessionPrincipal) -> ApiKeyResponse:
    api_key = await IdentityService(db).revoke_key(user_id, key_id)
    return ApiKeyResponse.model_validate(api_key)
