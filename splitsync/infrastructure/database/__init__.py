from .base import Base
from .session import (
    build_default_engine,
    create_session_factory,
    create_store_engine,
    init_local_store_schema,
)

__all__ = [
    "Base",
    "build_default_engine",
    "create_session_factory",
    "create_store_engine",
    "init_local_store_schema",
]
