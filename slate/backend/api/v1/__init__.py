"""
API Version 1 Router.

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from slate.backend.api.v1.endpoints import (
    box_configs,
    intake,
    keys,
    notes,
    pages,
    sections,
    sync,
    trash,
)

router = APIRouter()

router.include_router(keys.router, prefix="/keys", tags=["keys"])
router.include_router(pages.router, prefix="/pages", tags=["pages"])
router.include_router(sections.router, prefix="/sections", tags=["sections"])
router.include_router(notes.router, prefix="/notes", tags=["notes"])
router.include_router(notes.tags_router, prefix="/tags", tags=["notes"])
router.include_router(trash.router, prefix="/trash", tags=["trash"])
router.include_router(sync.router, prefix="/sync", tags=["sync"])
router.include_router(box_configs.router, prefix="/box-configs", tags=["box-configs"])
router.include_router(intake.router, prefix="/intake", tags=["intake"])
