"""Shared fixtures and storage doubles for the test suite."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import contextmanager
from typing import Dict, List, Optional

import httpx
import pytest

from statebridge.core.configuration import DEFAULT_SNAPSHOT_KEY, ENV_MAP
from statebridge.core.event_bus import EventBus
from statebridge.infrastructure.persistence.storage import MemoryStorage, StorageAdapter

SNAPSHOT_KEY = DEFAULT_SNAPSHOT_KEY
BASE_URL = "https://api.test"


class RecordingStorage(MemoryStorage):
    """Memory storage that logs writes and can delay reads and writes.

    ``write_delays`` maps a theme value to the seconds a snapshot carrying
    that theme takes to land, so tests can make older writes slower.
    """

    def __init__(
        self,
        initial: Optional[Dict[str, str]] = None,
        read_delay: float = 0.0,
        write_delays: Optional[Dict[str, float]] = None,
    ) -> None:
        super().__init__(initial)
        self.read_delay = read_delay
        self.write_delays = write_delays or {}
        self.reads: List[str] = []
        self.writes: List[str] = []

    async def _get_item(self, key: str) -> Optional[str]:
        self.reads.append(key)
        if self.read_delay:
            await asyncio.sleep(self.read_delay)
        return await super()._get_item(key)

    async def _set_item(self, key: str, value: str) -> None:
        self.writes.append(value)
        theme = json.loads(value).get("theme")
        delay = self.write_delays.get(theme, 0.0)
        if delay:
            await asyncio.sleep(delay)
        await super()._set_item(key, value)

    def stored(self, key: str = SNAPSHOT_KEY) -> Optional[dict]:
        raw = self.snapshot().get(key)
        return json.loads(raw) if raw is not None else None


class BrokenStorage(StorageAdapter):
    """Every primitive fails."""

    name = "broken storage"

    async def _get_item(self, key: str) -> Optional[str]:
        raise OSError("disk unavailable")

    async def _set_item(self, key: str, value: str) -> None:
        raise OSError("disk unavailable")

    async def _remove_item(self, key: str) -> None:
        raise OSError("disk unavailable")

    async def _clear(self) -> None:
        raise OSError("disk unavailable")


class ReadOnlyStorage(MemoryStorage):
    """Reads work, writes fail."""

    async def _set_item(self, key: str, value: str) -> None:
        raise PermissionError("read-only volume")


def snapshot_json(theme: str = "system", data: Optional[dict] = None) -> str:
    return json.dumps({"theme": theme, "data": data or {}})


def mock_http(handler, base_url: str = "") -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=base_url)


@contextmanager
def preserved_root_logger():
    """Restore root handlers and level after code that reconfigures logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        yield root
    finally:
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every configuration environment variable."""
    for env_key in ENV_MAP:
        monkeypatch.delenv(env_key, raising=False)
    return monkeypatch
