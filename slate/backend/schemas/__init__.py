# Pydantic schemas package
from slate.backend.schemas.base import (
    ErrorDetail,
    ErrorResponse,
    ResponseMetadata,
    SuccessResponse,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "ResponseMetadata",
    "SuccessResponse",
]
