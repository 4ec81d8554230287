"""Group endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from splitsync.application.schemas import GroupCreate, MutationResponse
from splitsync.application.services import OfflineMutationService
from splitsync.domain.exceptions import MissingUserError, RemoteServiceError
from splitsync.infrastructure.dependencies import get_mutation_service
from splitsync.presentation.api.errors import remote_error_to_http

router = APIRouter(prefix="/groups", tags=["Groups"])


@router.get("")
async def list_groups(
    service: OfflineMutationService = Depends(get_mutation_service),
) -> list[dict]:
    return await service.get_groups()


@router.post("", response_model=MutationResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    data: GroupCreate,
    service: OfflineMutationService = Depends(get_mutation_service),
) -> MutationResponse:
    """Create a group owned by the current user, queued when offline."""
    try:
        result = await service.create_group(data)
    except MissingUserError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except RemoteServiceError as e:
        raise remote_error_to_http(e)
    return MutationResponse.model_validate(result, from_attributes=True)
