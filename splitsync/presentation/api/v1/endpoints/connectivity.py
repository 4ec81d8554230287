"""Connectivity endpoints — lets the host report network changes to a manual provider."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from splitsync.application.interfaces import ConnectivityProvider
from splitsync.infrastructure.connectivity import ManualConnectivityProvider
from splitsync.infrastructure.dependencies import get_connectivity_provider

router = APIRouter(prefix="/connectivity", tags=["Connectivity"])


class ConnectivityUpdate(BaseModel):
    online: bool


@router.get("")
async def get_connectivity(
    provider: ConnectivityProvider = Depends(get_connectivity_provider),
) -> dict:
    return {"online": provider.is_online()}


@router.put("")
async def set_connectivity(
    data: ConnectivityUpdate,
    provider: ConnectivityProvider = Depends(get_connectivity_provider),
) -> dict:
    """Only available when no probe URL is configured."""
    if not isinstance(provider, ManualConnectivityProvider):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Connectivity is probed automatically and cannot be set",
        )
    provider.set_online(data.online)
    return {"online": provider.is_online()}
