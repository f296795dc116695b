"""Application Store - explicit composition root.

Builds the storage adapter, state container, request client and event bus
from configuration and hands them to consumers. There is no module-level
instance: create one at startup and pass it where it is needed.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from statebridge.core.configuration import SystemConfig, get_config
from statebridge.core.event_bus import EventBus
from statebridge.infrastructure.api.client import NO_BODY, RequestClient
from statebridge.infrastructure.api.errors import RequestFailure
from statebridge.infrastructure.persistence.duckdb_storage import DuckDBStorage
from statebridge.infrastructure.persistence.storage import MemoryStorage, StorageAdapter

from .container import StateContainer

logger = logging.getLogger(__name__)


def build_storage(config: SystemConfig) -> StorageAdapter:
    """Create the storage adapter selected by ``config.storage.backend``."""
    if config.storage.backend == "memory":
        return MemoryStorage()
    return DuckDBStorage(config.storage.db_path)


class Store:
    """Groups the state container and request client for one application.

    Usage:
        # During app initialization
        store = await Store.open()

        # In any consumer the store was handed to
        store.state.set_theme("dark")
        await store.fetch_into("profile", "/users/me")
    """

    def __init__(
        self,
        state: StateContainer,
        api: RequestClient,
        event_bus: EventBus,
    ) -> None:
        """Wire already-built components together.

        Prefer ``Store.open()`` which builds them from configuration.
        """
        self.state = state
        self.api = api
        self.bus = event_bus

    @classmethod
    async def open(
        cls,
        config: Optional[SystemConfig] = None,
        *,
        storage: Optional[StorageAdapter] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        event_bus: Optional[EventBus] = None,
    ) -> "Store":
        """Build every component and wait for the state to rehydrate.

        Args:
            config: System configuration; loaded via ``get_config()`` if omitted
            storage: Overrides the adapter chosen by configuration
            http_client: Transport handed to the request client
            event_bus: Shared bus; a new one is created if omitted

        Returns:
            A store whose state container is ready
        """
        config = config or get_config()
        bus = event_bus or EventBus()
        state = await StateContainer.create(
            storage or build_storage(config),
            storage_key=config.storage.snapshot_key,
            event_bus=bus,
        )
        api = RequestClient(config.api.base_url, http_client=http_client)
        logger.info(f"Store opened (backend={type(state.storage).__name__}, base_url={config.api.base_url or '-'})")
        return cls(state, api, bus)

    async def fetch_into(
        self,
        key: str,
        path: str,
        *,
        method: str = "GET",
        body: Any = NO_BODY,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Request ``path`` and store the payload under ``key``.

        Toggles ``is_loading`` around the call. A ``RequestFailure`` is written
        to the state's ``error`` slot instead of being raised.

        Returns:
            The payload, or None if the request failed
        """
        self.state.set_is_loading(True)
        self.state.clear_error()
        try:
            payload = await self.api.request(path, method=method, body=body, params=params)
        except RequestFailure as exc:
            logger.info(f"fetch_into('{key}') failed: {exc.message}")
            self.state.set_error(exc.message)
            return None
        finally:
            self.state.set_is_loading(False)

        self.state.set_data(key, payload)
        return payload

    async def close(self) -> None:
        """Flush pending state writes and release connections."""
        await self.state.aclose()
        await self.api.aclose()
        await self.bus.wait_until_idle()
        if isinstance(self.state.storage, DuckDBStorage):
            self.state.storage.close()
