from .cached_entities import (
    CachedEntityMixin,
    CachedExpenseModel,
    CachedGroupModel,
    CachedUserModel,
)
from .outbox import MetadataEntryModel, PendingActionModel

__all__ = [
    "CachedEntityMixin",
    "CachedExpenseModel",
    "CachedGroupModel",
    "CachedUserModel",
    "MetadataEntryModel",
    "PendingActionModel",
]
