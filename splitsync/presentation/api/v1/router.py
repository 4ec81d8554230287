"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from splitsync.presentation.api.v1.endpoints.health import router as health_router
from splitsync.presentation.api.v1.endpoints.expenses import router as expenses_router
from splitsync.presentation.api.v1.endpoints.groups import router as groups_router
from splitsync.presentation.api.v1.endpoints.users import router as users_router
from splitsync.presentation.api.v1.endpoints.sync import router as sync_router
from splitsync.presentation.api.v1.endpoints.outbox import router as outbox_router
from splitsync.presentation.api.v1.endpoints.conflicts import router as conflicts_router
from splitsync.presentation.api.v1.endpoints.connectivity import router as connectivity_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(expenses_router)
router.include_router(groups_router)
router.include_router(users_router)
router.include_router(sync_router)
router.include_router(outbox_router)
router.include_router(conflicts_router)
router.include_router(connectivity_router)
