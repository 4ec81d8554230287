"""Runtime wiring and FastAPI dependency injection — connects infrastructure to services."""

import logging
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from splitsync.application.interfaces import ConnectivityProvider, LocalStore, RemoteDataService
from splitsync.application.services import (
    ConflictResolver,
    ConnectivitySignal,
    OfflineMutationService,
    SyncEngine,
)
from splitsync.config import Settings
from splitsync.domain.time_utils import Clock, now_ms
from splitsync.infrastructure.connectivity import (
    HttpProbeConnectivityProvider,
    ManualConnectivityProvider,
)
from splitsync.infrastructure.database.repositories import SQLAlchemyLocalStore
from splitsync.infrastructure.database.session import (
    build_default_engine,
    create_session_factory,
    init_local_store_schema,
)
from splitsync.infrastructure.remote import HttpRemoteDataService

logger = logging.getLogger(__name__)


@dataclass
class SyncRuntime:
    """Every long-lived collaborator of one device, built once per process."""

    store: LocalStore
    remote: RemoteDataService
    provider: ConnectivityProvider
    signal: ConnectivitySignal
    resolver: ConflictResolver
    engine: SyncEngine
    mutations: OfflineMutationService
    db_engine: AsyncEngine | None = None

    async def start(self) -> None:
        if self.db_engine is not None:
            await init_local_store_schema(self.db_engine)
        if isinstance(self.provider, HttpProbeConnectivityProvider):
            await self.provider.start()
        self.signal.start()
        await self.engine.start()

    async def stop(self) -> None:
        await self.engine.stop()
        self.signal.stop()
        if isinstance(self.provider, HttpProbeConnectivityProvider):
            await self.provider.stop()
        if self.db_engine is not None:
            await self.db_engine.dispose()


def build_runtime(
    settings: Settings,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    remote: RemoteDataService | None = None,
    provider: ConnectivityProvider | None = None,
    clock: Clock = now_ms,
) -> SyncRuntime:
    """Assemble store, signal, resolver, engine and façade from settings.

    Any collaborator passed in replaces the one the settings would build,
    which is how tests run the whole stack against fakes.
    """
    db_engine = None
    if session_factory is None:
        db_engine = build_default_engine()
        session_factory = create_session_factory(db_engine)

    store = SQLAlchemyLocalStore(session_factory, clock=clock)

    if remote is None:
        remote = HttpRemoteDataService(
            base_url=settings.remote_base_url,
            api_key=settings.remote_api_key,
            timeout=settings.remote_timeout_seconds,
        )

    if provider is None:
        if settings.connectivity_probe_url.strip():
            provider = HttpProbeConnectivityProvider(
                probe_url=settings.connectivity_probe_url,
                interval_seconds=settings.connectivity_probe_interval_seconds,
            )
        else:
            logger.info("No connectivity probe configured; connectivity is manual")
            provider = ManualConnectivityProvider(online=True)

    signal = ConnectivitySignal(provider)
    resolver = ConflictResolver(
        store,
        remote,
        recency_window_ms=settings.conflict_recency_window_ms,
        merge_separator=settings.conflict_merge_separator,
        clock=clock,
    )
    engine = SyncEngine(
        store,
        remote,
        signal,
        resolver,
        interval_seconds=settings.sync_interval_seconds,
        debounce_seconds=settings.reconnect_debounce_seconds,
        retry_ceiling=settings.retry_ceiling,
        cache_max_age_ms=settings.cache_max_age_ms,
        group_limit=settings.pull_group_limit,
        expense_limit=settings.pull_expense_limit,
        expense_window_days=settings.pull_expense_window_days,
        current_user_id=settings.current_user_id,
        clock=clock,
    )
    mutations = OfflineMutationService(
        store,
        remote,
        signal,
        current_user_id=settings.current_user_id,
        clock=clock,
    )

    return SyncRuntime(
        store=store,
        remote=remote,
        provider=provider,
        signal=signal,
        resolver=resolver,
        engine=engine,
        mutations=mutations,
        db_engine=db_engine,
    )


# ── FastAPI dependencies ─────────────────────────────────────────────


def get_runtime(request: Request) -> SyncRuntime:
    return request.app.state.runtime


def get_sync_engine(request: Request) -> SyncEngine:
    return get_runtime(request).engine


def get_conflict_resolver(request: Request) -> ConflictResolver:
    return get_runtime(request).resolver


def get_mutation_service(request: Request) -> OfflineMutationService:
    return get_runtime(request).mutations


def get_connectivity_provider(request: Request) -> ConnectivityProvider:
    return get_runtime(request).provider
