from .local_store import LocalStore
from .remote_data_service import QueryFilter, QueryOrder, RemoteDataService
from .connectivity_provider import ConnectivityListener, ConnectivityProvider

__all__ = [
    "LocalStore",
    "QueryFilter",
    "QueryOrder",
    "RemoteDataService",
    "ConnectivityListener",
    "ConnectivityProvider",
]
