"""Translate domain exceptions into HTTP errors."""

from fastapi import HTTPException, status

from splitsync.domain.exceptions import RemoteServiceError


def remote_error_to_http(e: RemoteServiceError) -> HTTPException:
    """Remote 4xx keeps its status; network failures and 5xx surface as 502."""
    return HTTPException(
        status_code=e.status_code if 400 <= e.status_code < 500 else status.HTTP_502_BAD_GATEWAY,
        detail=f"[{e.entity_type}] {e.message}",
    )
