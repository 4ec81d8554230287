"""Sync status and manual trigger endpoints."""

from fastapi import APIRouter, Depends

from splitsync.application.schemas import SyncReportResponse, SyncStatusResponse
from splitsync.application.services import SyncEngine
from splitsync.infrastructure.dependencies import get_sync_engine

router = APIRouter(prefix="/sync", tags=["Sync"])


@router.get("/status", response_model=SyncStatusResponse)
async def get_sync_status(
    engine: SyncEngine = Depends(get_sync_engine),
) -> SyncStatusResponse:
    status = await engine.get_status()
    return SyncStatusResponse.model_validate(status, from_attributes=True)


@router.post("", response_model=SyncReportResponse)
async def force_sync(
    engine: SyncEngine = Depends(get_sync_engine),
) -> SyncReportResponse:
    """Run a sync cycle now. Returns a skipped report when offline or already syncing."""
    report = await engine.force_sync()
    return SyncReportResponse.model_validate(report, from_attributes=True)
