"""Key-value storage contract for persisted application state.

Adapters never raise to callers. The public ``get``/``set``/``remove``/``clear``
methods degrade failures to ``None`` or a no-op and log them; the
``read``/``write``/``delete``/``wipe`` variants return a :class:`StorageResult`
so callers that care can tell a missing key from a failing backend.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class StorageStatus(str, Enum):
    FOUND = "found"
    MISSING = "missing"
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class StorageResult:
    """Outcome of a single storage operation."""

    status: StorageStatus
    value: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not StorageStatus.ERROR

    @classmethod
    def found(cls, value: str) -> "StorageResult":
        return cls(StorageStatus.FOUND, value=value)

    @classmethod
    def missing(cls) -> "StorageResult":
        return cls(StorageStatus.MISSING)

    @classmethod
    def done(cls) -> "StorageResult":
        return cls(StorageStatus.OK)

    @classmethod
    def failed(cls, exc: BaseException) -> "StorageResult":
        return cls(StorageStatus.ERROR, error=f"{type(exc).__name__}: {exc}")


class StorageAdapter(ABC):
    """Async string key-value store with a fail-silent public contract.

    Subclasses implement the raw ``_get_item``/``_set_item``/``_remove_item``/
    ``_clear`` primitives, which are free to raise.
    """

    name: str = "storage"

    @abstractmethod
    async def _get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def _set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def _remove_item(self, key: str) -> None:
        ...

    @abstractmethod
    async def _clear(self) -> None:
        ...

    # --- Explicit outcomes ---

    async def read(self, key: str) -> StorageResult:
        try:
            value = await self._get_item(key)
        except Exception as exc:
            logger.error(f"Error reading '{key}' from {self.name}: {exc}")
            return StorageResult.failed(exc)
        if value is None:
            return StorageResult.missing()
        return StorageResult.found(value)

    async def write(self, key: str, value: str) -> StorageResult:
        try:
            await self._set_item(key, value)
        except Exception as exc:
            logger.error(f"Error saving '{key}' to {self.name}: {exc}")
            return StorageResult.failed(exc)
        return StorageResult.done()

    async def delete(self, key: str) -> StorageResult:
        try:
            await self._remove_item(key)
        except Exception as exc:
            logger.error(f"Error removing '{key}' from {self.name}: {exc}")
            return StorageResult.failed(exc)
        return StorageResult.done()

    async def wipe(self) -> StorageResult:
        try:
            await self._clear()
        except Exception as exc:
            logger.error(f"Error clearing {self.name}: {exc}")
            return StorageResult.failed(exc)
        return StorageResult.done()

    # --- Fail-silent contract ---

    async def get(self, key: str) -> Optional[str]:
        """Return the stored string, or None when missing or on failure."""
        return (await self.read(key)).value

    async def set(self, key: str, value: str) -> None:
        await self.write(key, value)

    async def remove(self, key: str) -> None:
        await self.delete(key)

    async def clear(self) -> None:
        await self.wipe()


class MemoryStorage(StorageAdapter):
    """Dict-backed storage for tests and ephemeral sessions."""

    name = "memory storage"

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    async def _get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def _set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def _remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def _clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> Dict[str, str]:
        """Copy of the raw stored items."""
        return dict(self._items)
