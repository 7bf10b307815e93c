"""
API Key Schemas.

The plain key appears only in the issuance response.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from slate.backend.schemas.base import OrmModel, RequestModel


class ApiKeyCreate(RequestModel):
    name: str = Field(
        ..., max_length=255, description="Label shown in key listings", examples=["Browser extension"],
    )


class ApiKeyIssued(BaseModel):
    """Issuance response. `key` is never returned again."""

    id: str
    name: str
    key: str
    created_at: datetime


class ApiKeyResponse(OrmModel):
    id: str
    name: str
    created_at: datetime
    last_used_at: datetime | None
    revoked_at: datetime | None


class ApiKeyListResponse(BaseModel):
    keys: list[ApiKeyResponse]
