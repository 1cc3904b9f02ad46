"""Application Store - explicit application context.

Owns the state slices, the HTTP adapter, durable storage and every store
action. Built once at startup with ``Store.open()`` and handed to each
controller; ``close()`` tears it down.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Optional

import httpx

from propconnect.shared.core.configuration import SystemConfig
from propconnect.shared.core.event_bus import EventBus
from propconnect.shared.infrastructure.http.api_client import ApiClient
from propconnect.shared.infrastructure.persistence.duckdb_storage import DuckDBStateStorage

from .app_state import AppState
from .auth import AuthActions
from .dashboard import DashboardActions
from .favorites import FavoritesActions
from .preferences import PreferencesActions
from .ui import UIActions

logger = logging.getLogger(__name__)


class Store:
    """Application context for the PropConnect client.

    Usage:
        store = await Store.open(config)
        await store.auth.restore_session()

        # In any controller
        await store.auth.login(PrincipalKind.SEEKER, email, password)
        store.state.auth.is_authenticated

        await store.close()
    """

    def __init__(
        self,
        config: SystemConfig,
        api: ApiClient,
        storage: DuckDBStateStorage,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        """Wire slices and actions. Prefer ``Store.open()``.

        Args:
            config: Validated system configuration
            api: HTTP adapter for the backend
            storage: Open durable storage for the persisted subset
            event_bus: Bus for slice change events, a new one if omitted
        """
        self.config = config
        self.api = api
        self.storage = storage
        self.bus = event_bus or EventBus()
        self.state = AppState(self.bus, on_persisted_change=self.persist)

        self.ui = UIActions(self)
        self.auth = AuthActions(self)
        self.favorites = FavoritesActions(self)
        self.preferences = PreferencesActions(self)
        self.dashboard = DashboardActions(self)

        self._background: set[asyncio.Task] = set()
        self._closed = False

    @classmethod
    async def open(
        cls,
        config: Optional[SystemConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        event_bus: Optional[EventBus] = None,
    ) -> "Store":
        """Build a store and rehydrate the persisted subset.

        Session validation is a separate step (``auth.restore_session()``)
        so callers decide when the first network call happens.
        """
        config = config or SystemConfig()
        api = ApiClient(config.api.base_url, timeout=config.api.timeout, transport=transport)
        storage = DuckDBStateStorage(config.storage.db_path)
        storage.open()

        store = cls(config, api, storage, event_bus)
        store.rehydrate()
        return store

    # --- Persistence ---

    def persist(self) -> None:
        """Write the persisted subset under the configured storage key.

        A guest has nothing worth keeping, so the stored session is dropped.
        """
        if self._closed or self.storage.conn is None:
            return
        key = self.config.storage.storage_key
        if self.state.auth.kind is None:
            self.storage.remove(key)
            return
        self.storage.save(key, self.state.to_persisted())

    def rehydrate(self) -> None:
        blob = self.storage.load(self.config.storage.storage_key)
        self.state.rehydrate(blob)
        logger.info(f"Rehydrated store as {self.state.auth.user_type.value}")

    # --- Background work ---

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> Optional[asyncio.Task]:
        """Run ``coro`` without awaiting it. Failures are logged, never raised."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug(f"No running loop, skipped background task '{name}'")
            return None
        task = loop.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background_done)
        return task

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.info(f"Background task '{task.get_name()}' failed (ignored): {exc}")

    async def wait_background(self) -> None:
        """Wait for fire-and-forget requests and pending event handlers."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        await self.bus.wait_until_idle()

    # --- Teardown ---

    async def close(self) -> None:
        if self._closed:
            return
        self.ui.cancel_timers()
        await self.wait_background()
        self.persist()
        self._closed = True
        await self.api.aclose()
        self.storage.close()
        self.bus.clear()
        logger.info("Store closed")

    async def __aenter__(self) -> "Store":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
