"""Connectivity providers — implement the ConnectivityProvider interface."""

import asyncio
import logging

import httpx

from splitsync.application.interfaces import ConnectivityListener, ConnectivityProvider

logger = logging.getLogger(__name__)


class _ListenerRegistry(ConnectivityProvider):
    """Shared subscribe/unsubscribe/notify plumbing."""

    def __init__(self, online: bool) -> None:
        self._online = online
        self._listeners: list[ConnectivityListener] = []

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: ConnectivityListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ConnectivityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _update(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception:
                logger.exception("Connectivity listener failed")


class ManualConnectivityProvider(_ListenerRegistry):
    """Provider driven explicitly by the host (OS network callbacks, tests)."""

    def __init__(self, online: bool = True) -> None:
        super().__init__(online)

    def set_online(self, online: bool) -> None:
        self._update(online)


class HttpProbeConnectivityProvider(_ListenerRegistry):
    """Asyncio daemon that probes a health URL and reports reachability changes.

    Any HTTP response counts as reachable; only transport failures and
    timeouts count as offline.
    """

    def __init__(
        self,
        probe_url: str,
        interval_seconds: float = 10.0,
        timeout_seconds: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(online=True)
        self._probe_url = probe_url
        self._interval = interval_seconds
        self._timeout = timeout_seconds
        self._http_client = http_client
        self._running = False
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        """Probe once, then keep probing in the background."""
        await self.probe()
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Connectivity probe started for %s", self._probe_url)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Connectivity probe stopped")

    async def probe(self) -> bool:
        client = self._http_client or httpx.AsyncClient(timeout=self._timeout)
        should_close = self._http_client is None
        try:
            await client.head(self._probe_url)
            reachable = True
        except httpx.HTTPError as exc:
            logger.debug("Connectivity probe failed: %s", exc)
            reachable = False
        finally:
            if should_close:
                await client.aclose()
        self._update(reachable)
        return reachable

    async def _loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            try:
                await self.probe()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Connectivity probe error")
