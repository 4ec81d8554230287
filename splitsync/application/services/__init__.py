from .connectivity_signal import ConnectivitySignal
from .conflict_resolver import ConflictResolver
from .sync_engine import SyncEngine
from .offline_mutations import OfflineMutationService

__all__ = [
    "ConnectivitySignal",
    "ConflictResolver",
    "SyncEngine",
    "OfflineMutationService",
]
