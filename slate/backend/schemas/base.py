"""
Base Schemas.

Error envelope shared by every failing response, and the common
configuration for request and response models.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from slate.backend.core.utils import utc_now


class ResponseMetadata(BaseModel):
    """Metadata included in all error responses."""

    timestamp: datetime = Field(default_factory=utc_now)
    request_id: str | None = None


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    data: None = None
    error: ErrorDetail
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class SuccessResponse(BaseModel):
    """Body of operations that return nothing but an acknowledgement."""

    success: bool = True


class OrmModel(BaseModel):
    """Response model read straight from ORM rows."""

    model_config = ConfigDict(from_attributes=True)


class RequestModel(BaseModel):
    """Request body model. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")
