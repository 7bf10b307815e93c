# Importing every model registers it on Base.metadata
from slate.backend.models.api_key import ApiKey
from slate.backend.models.base import Base
from slate.backend.models.box_config import BoxConfig
from slate.backend.models.intake_session import IntakeSession
from slate.backend.models.note import Note
from slate.backend.models.page import Page
from slate.backend.models.permission import Permission, PermissionStatus, Role
from slate.backend.models.section import Section
from slate.backend.models.user import User

__all__ = [
    "ApiKey",
    "Base",
    "BoxConfig",
    "IntakeSession",
    "Note",
    "Page",
    "Permission",
    "PermissionStatus",
    "Role",
    "Section",
    "User",
]
