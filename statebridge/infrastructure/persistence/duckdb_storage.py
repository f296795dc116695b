"""DuckDB-backed key-value storage.

Keeps every key in a single ``kv_store`` table so the persisted state survives
process restarts. DuckDB calls are blocking and run in the default executor.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

import duckdb

from .storage import StorageAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")

KV_TABLE = "kv_store"


class DuckDBStorage(StorageAdapter):
    """Persists string values by key in a DuckDB database file."""

    name = "duckdb storage"

    def __init__(self, db_path: Optional[str] = None) -> None:
        # No path means a throwaway in-memory database
        self.db_path = db_path or ":memory:"
        self.conn: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.Lock()

    def _connect(self) -> duckdb.DuckDBPyConnection:
        if self.conn is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = duckdb.connect(self.db_path)
            self._create_schema(self.conn)
            logger.info(f"Storage database initialized: {self.db_path}")
        return self.conn

    def _create_schema(self, conn: duckdb.DuckDBPyConnection) -> None:
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {KV_TABLE} (
                key VARCHAR PRIMARY KEY,
                value VARCHAR NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    async def _run(self, fn: Callable[[duckdb.DuckDBPyConnection], T]) -> T:
        def call() -> T:
            with self._lock:
                return fn(self._connect())

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, call)

    async def _get_item(self, key: str) -> Optional[str]:
        def fetch(conn: duckdb.DuckDBPyConnection) -> Optional[str]:
            row = conn.execute(
                f"SELECT value FROM {KV_TABLE} WHERE key = ?", (key,)
            ).fetchone()
            return row[0] if row else None

        return await self._run(fetch)

    async def _set_item(self, key: str, value: str) -> None:
        def upsert(conn: duckdb.DuckDBPyConnection) -> Any:
            return conn.execute(
                f"""
                INSERT OR REPLACE INTO {KV_TABLE} (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                (key, value),
            )

        await self._run(upsert)

    async def _remove_item(self, key: str) -> None:
        await self._run(
            lambda conn: conn.execute(f"DELETE FROM {KV_TABLE} WHERE key = ?", (key,))
        )

    async def _clear(self) -> None:
        await self._run(lambda conn: conn.execute(f"DELETE FROM {KV_TABLE}"))

    def close(self) -> None:
        """Close the database connection; the next call reopens it."""
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
                logger.debug(f"Storage database closed: {self.db_path}")
