"""Connectivity signal — the single reactive online/offline boolean."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

from splitsync.application.interfaces import ConnectivityProvider

logger = logging.getLogger(__name__)

SignalListener = Callable[[bool], Awaitable[None] | None]


class ConnectivitySignal:
    """Wraps a ConnectivityProvider and fans edge-triggered changes out to listeners.

    Reads ``True`` until the provider has been observed once, so startup
    never flickers into offline mode. Listeners may be plain or async
    callables; async ones are scheduled as tasks on the running loop.
    """

    def __init__(self, provider: ConnectivityProvider) -> None:
        self._provider = provider
        self._online = True
        self._observed = False
        self._listeners: list[SignalListener] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_online(self) -> bool:
        return self._online if self._observed else True

    @property
    def observed(self) -> bool:
        return self._observed

    def start(self) -> None:
        """Subscribe to the provider and take the first observation."""
        self._provider.subscribe(self._on_provider_change)
        self._online = self._provider.is_online()
        self._observed = True
        logger.info("Connectivity signal started (online=%s)", self._online)

    def stop(self) -> None:
        self._provider.unsubscribe(self._on_provider_change)
        for task in list(self._tasks):
            task.cancel()

    def add_listener(self, listener: SignalListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: SignalListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _on_provider_change(self, online: bool) -> None:
        previous = self.is_online
        self._online = online
        self._observed = True
        if online == previous:
            return
        for listener in list(self._listeners):
            try:
                result = listener(online)
            except Exception:
                logger.exception("Connectivity listener failed")
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
