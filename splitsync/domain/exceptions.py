"""Domain-specific exceptions — framework-independent."""


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class RemoteServiceError(Exception):
    """Raised when the remote data service rejects a call or cannot be reached.

    ``status_code`` 0 means the request never got a response (network failure).
    """

    NETWORK_FAILURE = 0

    def __init__(self, entity_type: str, status_code: int, message: str):
        self.entity_type = entity_type
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{entity_type}] {status_code}: {message}")

    @property
    def is_transient(self) -> bool:
        """Whether retrying later could plausibly succeed."""
        return (
            self.status_code == self.NETWORK_FAILURE
            or self.status_code >= 500
            or self.status_code in (408, 429)
        )


class MissingUserError(Exception):
    """Raised when an operation needs the signed-in user and none is configured."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"'{operation}' requires an authenticated user")
