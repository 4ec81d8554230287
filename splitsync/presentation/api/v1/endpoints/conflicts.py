"""Conflict endpoints — list, detect, auto-resolve and manually resolve."""

from fastapi import APIRouter, Depends, HTTPException, status

from splitsync.application.schemas import (
    ConflictPassResponse,
    ConflictResolutionRequest,
    ConflictResponse,
)
from splitsync.application.services import ConflictResolver
from splitsync.domain.entities import ConflictResolution
from splitsync.domain.exceptions import EntityNotFoundError, RemoteServiceError
from splitsync.infrastructure.dependencies import get_conflict_resolver
from splitsync.presentation.api.errors import remote_error_to_http

router = APIRouter(prefix="/conflicts", tags=["Conflicts"])


@router.get("", response_model=list[ConflictResponse])
async def list_conflicts(
    resolver: ConflictResolver = Depends(get_conflict_resolver),
) -> list[ConflictResponse]:
    """Outstanding conflicts from the last detection pass or sync cycle."""
    return [ConflictResponse.model_validate(c, from_attributes=True) for c in resolver.conflicts]


@router.post("/detect", response_model=list[ConflictResponse])
async def detect_conflicts(
    resolver: ConflictResolver = Depends(get_conflict_resolver),
) -> list[ConflictResponse]:
    conflicts = await resolver.detect_conflicts()
    return [ConflictResponse.model_validate(c, from_attributes=True) for c in conflicts]


@router.post("/auto-resolve", response_model=ConflictPassResponse)
async def auto_resolve_conflicts(
    resolver: ConflictResolver = Depends(get_conflict_resolver),
) -> ConflictPassResponse:
    """Detect, then resolve whatever the policy can decide on its own."""
    result = await resolver.sync_with_conflict_resolution()
    return ConflictPassResponse.model_validate(result, from_attributes=True)


@router.post("/{conflict_id}/resolve")
async def resolve_conflict(
    conflict_id: str,
    data: ConflictResolutionRequest,
    resolver: ConflictResolver = Depends(get_conflict_resolver),
) -> dict:
    """Apply the user's decision; returns the record now held by the remote store."""
    resolution = ConflictResolution(
        conflict_id=conflict_id,
        resolution_type=data.resolution_type,
        merged_data=data.merged_data,
    )
    try:
        return await resolver.resolve_conflict(resolution)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except RemoteServiceError as e:
        raise remote_error_to_http(e)
