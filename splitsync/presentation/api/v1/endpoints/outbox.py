"""Outbox inspection endpoints — pending actions and the failed dead-letter set."""

from fastapi import APIRouter, Depends, HTTPException, status

from splitsync.application.schemas import PendingActionResponse
from splitsync.application.services import SyncEngine
from splitsync.domain.exceptions import EntityNotFoundError
from splitsync.infrastructure.dependencies import SyncRuntime, get_runtime, get_sync_engine

router = APIRouter(prefix="/outbox", tags=["Outbox"])


@router.get("", response_model=list[PendingActionResponse])
async def list_pending_actions(
    runtime: SyncRuntime = Depends(get_runtime),
) -> list[PendingActionResponse]:
    actions = await runtime.store.get_pending_actions()
    return [PendingActionResponse.model_validate(a, from_attributes=True) for a in actions]


@router.get("/failed", response_model=list[PendingActionResponse])
async def list_failed_actions(
    runtime: SyncRuntime = Depends(get_runtime),
) -> list[PendingActionResponse]:
    """Actions that ran out of retries or were rejected outright."""
    actions = await runtime.store.get_failed_actions()
    return [PendingActionResponse.model_validate(a, from_attributes=True) for a in actions]


@router.post("/{action_id}/retry", response_model=PendingActionResponse)
async def retry_action(
    action_id: str,
    engine: SyncEngine = Depends(get_sync_engine),
) -> PendingActionResponse:
    try:
        action = await engine.requeue_action(action_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return PendingActionResponse.model_validate(action, from_attributes=True)


@router.delete("/{action_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_action(
    action_id: str,
    engine: SyncEngine = Depends(get_sync_engine),
) -> None:
    """Drop an action and roll back its optimistic cache write."""
    try:
        await engine.discard_action(action_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
