"""User profile endpoint."""

from fastapi import APIRouter, Depends, HTTPException, status

from splitsync.application.services import OfflineMutationService
from splitsync.infrastructure.dependencies import get_mutation_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    service: OfflineMutationService = Depends(get_mutation_service),
) -> dict:
    user = await service.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User with id '{user_id}' not found")
    return user
