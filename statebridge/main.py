"""statebridge - application entry point."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from statebridge.core.configuration import SystemConfig, get_config
from statebridge.core.event_bus import EventBus
from statebridge.core.logging_setup import configure_logging
from statebridge.infrastructure.persistence.storage import StorageAdapter
from statebridge.state.store import Store

logger = logging.getLogger(__name__)


async def start(
    config: Optional[SystemConfig] = None,
    *,
    storage: Optional[StorageAdapter] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    event_bus: Optional[EventBus] = None,
) -> Store:
    """Configure logging from ``config.logging`` and open the store.

    Call once at startup; embedders that manage logging themselves can use
    ``Store.open`` directly.
    """
    config = config or get_config()
    configure_logging(config.logging.level, config.logging.log_file)
    return await Store.open(
        config,
        storage=storage,
        http_client=http_client,
        event_bus=event_bus,
    )


async def _print_persisted_state() -> None:
    store = await start()
    try:
        print(store.state.get_state().persisted().to_json())
    finally:
        await store.close()


def main() -> None:
    """Open the configured store and print its persisted snapshot."""
    asyncio.run(_print_persisted_state())


if __name__ == "__main__":
    main()
