"""Persistence adapters (memory, DuckDB)."""

from statebridge.infrastructure.persistence.storage import (
    MemoryStorage,
    StorageAdapter,
    StorageResult,
    StorageStatus,
)
from statebridge.infrastructure.persistence.duckdb_storage import DuckDBStorage

__all__ = [
    "StorageAdapter",
    "StorageResult",
    "StorageStatus",
    "MemoryStorage",
    "DuckDBStorage",
]
