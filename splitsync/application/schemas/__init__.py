from .mutations import ExpenseCreate, ExpenseUpdate, GroupCreate, MutationResponse
from .sync import (
    ConflictPassResponse,
    ConflictResolutionRequest,
    ConflictResponse,
    PendingActionResponse,
    SyncReportResponse,
    SyncStatusResponse,
)

__all__ = [
    "ExpenseCreate",
    "ExpenseUpdate",
    "GroupCreate",
    "MutationResponse",
    "ConflictPassResponse",
    "ConflictResolutionRequest",
    "ConflictResponse",
    "PendingActionResponse",
    "SyncReportResponse",
    "SyncStatusResponse",
]
