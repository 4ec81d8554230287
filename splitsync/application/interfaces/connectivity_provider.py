"""Abstract connectivity provider interface (port)."""

from abc import ABC, abstractmethod
from collections.abc import Callable

ConnectivityListener = Callable[[bool], None]


class ConnectivityProvider(ABC):
    """Source of online/offline change events plus a synchronous current-state read."""

    @abstractmethod
    def is_online(self) -> bool:
        ...

    @abstractmethod
    def subscribe(self, listener: ConnectivityListener) -> None:
        """Register a callback invoked with the new state on every change."""
        ...

    @abstractmethod
    def unsubscribe(self, listener: ConnectivityListener) -> None:
        ...
