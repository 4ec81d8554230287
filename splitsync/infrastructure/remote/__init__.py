from .http_remote_service import DEFAULT_TABLES, HttpRemoteDataService

__all__ = ["DEFAULT_TABLES", "HttpRemoteDataService"]
