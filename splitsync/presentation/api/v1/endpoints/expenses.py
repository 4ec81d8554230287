"""Expense endpoints — writes go online or into the outbox, reads fall back to the cache."""

from fastapi import APIRouter, Depends, HTTPException, status

from splitsync.application.schemas import ExpenseCreate, ExpenseUpdate, MutationResponse
from splitsync.application.services import OfflineMutationService
from splitsync.domain.exceptions import EntityNotFoundError, RemoteServiceError
from splitsync.infrastructure.dependencies import get_mutation_service
from splitsync.presentation.api.errors import remote_error_to_http

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.get("")
async def list_expenses(
    group_id: str | None = None,
    service: OfflineMutationService = Depends(get_mutation_service),
) -> list[dict]:
    """Cached expenses, refreshed from the remote store when online."""
    return await service.get_expenses(group_id)


@router.post("", response_model=MutationResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    data: ExpenseCreate,
    service: OfflineMutationService = Depends(get_mutation_service),
) -> MutationResponse:
    try:
        result = await service.create_expense(data)
    except RemoteServiceError as e:
        raise remote_error_to_http(e)
    return MutationResponse.model_validate(result, from_attributes=True)


@router.patch("/{expense_id}", response_model=MutationResponse)
async def update_expense(
    expense_id: str,
    data: ExpenseUpdate,
    service: OfflineMutationService = Depends(get_mutation_service),
) -> MutationResponse:
    try:
        result = await service.update_expense(expense_id, data)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except RemoteServiceError as e:
        raise remote_error_to_http(e)
    return MutationResponse.model_validate(result, from_attributes=True)


@router.delete("/{expense_id}", response_model=MutationResponse)
async def delete_expense(
    expense_id: str,
    service: OfflineMutationService = Depends(get_mutation_service),
) -> MutationResponse:
    try:
        result = await service.delete_expense(expense_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except RemoteServiceError as e:
        raise remote_error_to_http(e)
    return MutationResponse.model_validate(result, from_attributes=True)
