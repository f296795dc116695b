"""Persisted application state container.

Holds the in-memory :class:`AppState`, notifies subscribers synchronously after
every committed change and mirrors ``{theme, data}`` into a
:class:`StorageAdapter` through a single-writer queue, so the newest
committed state is always the last one written.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from typing import Any, Callable, List, Optional, Tuple

from statebridge.core import events
from statebridge.core.configuration import DEFAULT_SNAPSHOT_KEY
from statebridge.core.event_bus import EventBus
from statebridge.infrastructure.persistence.storage import (
    StorageAdapter,
    StorageResult,
    StorageStatus,
)

from .app_state import AppState, HydrationPhase, PersistedSnapshot, Theme

logger = logging.getLogger(__name__)

Listener = Callable[[AppState], None]
Reducer = Callable[[AppState], AppState]
Unsubscribe = Callable[[], None]


class StateContainer:
    """Owns the application state and keeps its persisted subset in storage.

    Lifecycle: ``UNINITIALIZED`` → ``HYDRATING`` → ``READY``. Mutators work in
    every phase, but storage is only written once ``READY``. Changes to
    ``theme``/``data`` made before that are replayed over the rehydrated
    snapshot and written right after hydration.

    Usage:
        container = await StateContainer.create(DuckDBStorage("state.duckdb"))
        unsubscribe = container.subscribe(lambda state: print(state.theme))
        container.set_theme("dark")
    """

    def __init__(
        self,
        storage: StorageAdapter,
        *,
        storage_key: str = DEFAULT_SNAPSHOT_KEY,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self.storage = storage
        self.storage_key = storage_key
        self.event_bus = event_bus

        self._state = AppState()
        self._phase = HydrationPhase.UNINITIALIZED
        self._ready = asyncio.Event()
        self._listeners: List[Listener] = []
        # Persisted-field mutations committed before READY, in commit order
        self._pending_ops: List[Reducer] = []
        self._write_queue: asyncio.Queue[str] = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None

    @classmethod
    async def create(
        cls,
        storage: StorageAdapter,
        *,
        storage_key: str = DEFAULT_SNAPSHOT_KEY,
        event_bus: Optional[EventBus] = None,
    ) -> "StateContainer":
        """Build a container and wait for rehydration to finish."""
        container = cls(storage, storage_key=storage_key, event_bus=event_bus)
        await container.hydrate()
        return container

    # --- Lifecycle ---

    @property
    def phase(self) -> HydrationPhase:
        return self._phase

    @property
    def is_ready(self) -> bool:
        return self._phase is HydrationPhase.READY

    async def wait_until_ready(self) -> None:
        await self._ready.wait()

    async def hydrate(self) -> AppState:
        """Load the persisted snapshot into memory and become ready.

        Runs once; later or concurrent calls wait for the first to finish.
        """
        if self._phase is HydrationPhase.READY:
            return self.get_state()
        if self._phase is HydrationPhase.HYDRATING:
            await self._ready.wait()
            return self.get_state()

        self._phase = HydrationPhase.HYDRATING
        logger.debug(f"Hydrating state from '{self.storage_key}'")
        try:
            result = await self.storage.read(self.storage_key)
        except BaseException:
            self._phase = HydrationPhase.UNINITIALIZED
            raise

        snapshot, outcome = self._decode_snapshot(result)
        restored = snapshot is not None
        if snapshot is None:
            snapshot = PersistedSnapshot()

        # Transient fields keep whatever was set while hydrating
        next_state = self._state.model_copy(
            update={"theme": snapshot.theme, "data": dict(snapshot.data)}
        )
        replay, self._pending_ops = self._pending_ops, []
        for reducer in replay:
            next_state = reducer(next_state)

        self._phase = HydrationPhase.READY
        changed = not next_state.same_as(self._state)
        self._state = next_state
        if changed:
            self._notify(next_state)
        if replay:
            # Written even when unchanged: the stored snapshot predates the replay
            self._enqueue_write(next_state.persisted().to_json())
        self._ready.set()

        logger.info(
            f"State ready (snapshot={outcome}, theme={next_state.theme.value}, "
            f"keys={len(next_state.data)}, replayed={len(replay)})"
        )
        if self.event_bus is not None:
            await self.event_bus.publish(
                events.TOPIC_STATE_HYDRATED,
                events.create_state_hydrated_event(
                    self.storage_key, restored, outcome, replayed=len(replay)
                ),
            )
        return self.get_state()

    def _decode_snapshot(self, result: StorageResult) -> Tuple[Optional[PersistedSnapshot], str]:
        if result.status is StorageStatus.ERROR:
            logger.warning(f"Could not read state snapshot, starting from defaults: {result.error}")
            return None, "error"
        if result.value is None:
            return None, "missing"
        try:
            return PersistedSnapshot.from_json(result.value), "found"
        except ValueError as exc:
            logger.warning(f"Discarding malformed state snapshot '{self.storage_key}': {exc}")
            return None, "invalid"

    # --- Reads ---

    def get_state(self) -> AppState:
        """Current state; its ``data`` is a copy the caller may modify."""
        return self._state.detached()

    def get_data(self, key: str) -> Any:
        """Copy of the value stored under ``key``, or None."""
        return copy.deepcopy(self._state.data.get(key))

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Call ``listener`` with the new state after every committed change.

        Returns:
            A function that removes the listener; calling it twice is harmless
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Mutators ---

    def set_theme(self, theme: Theme | str) -> None:
        theme = Theme(theme)
        self._mutate(lambda state: state.model_copy(update={"theme": theme}), persisted=True)

    def set_is_loading(self, is_loading: bool) -> None:
        is_loading = bool(is_loading)
        self._mutate(lambda state: state.model_copy(update={"is_loading": is_loading}))

    def set_error(self, error: Optional[str]) -> None:
        self._mutate(lambda state: state.model_copy(update={"error": error}))

    def clear_error(self) -> None:
        self.set_error(None)

    def set_data(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``; other keys are left untouched.

        The stored value is a JSON copy, so later changes to ``value`` by the
        caller are not seen.

        Raises:
            TypeError: If ``key`` is not a string or ``value`` is not JSON-serializable
        """
        if not isinstance(key, str):
            raise TypeError(f"data keys must be str, got {type(key).__name__}")
        try:
            value = json.loads(json.dumps(value))
        except ValueError as exc:
            raise TypeError(f"value for '{key}' is not JSON-serializable: {exc}") from exc

        self._mutate(
            lambda state: state.model_copy(update={"data": {**state.data, key: value}}),
            persisted=True,
        )

    def clear_data(self) -> None:
        self._mutate(lambda state: state.model_copy(update={"data": {}}), persisted=True)

    def _mutate(self, reducer: Reducer, persisted: bool = False) -> None:
        if persisted and not self.is_ready:
            self._pending_ops.append(reducer)
        self._commit(reducer(self._state), persist=persisted)

    def _commit(self, next_state: AppState, persist: bool) -> None:
        if next_state.same_as(self._state):
            return

        payload = None
        if persist and self.is_ready:
            payload = next_state.persisted().to_json()

        self._state = next_state
        self._notify(next_state)
        if payload is not None:
            self._enqueue_write(payload)

    def _notify(self, state: AppState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state.detached())
            except Exception:
                name = getattr(listener, "__name__", repr(listener))
                logger.exception(f"State listener '{name}' failed")

    # --- Persistence ---

    def _enqueue_write(self, payload: str) -> None:
        self._write_queue.put_nowait(payload)
        self._ensure_writer()

    def _ensure_writer(self) -> None:
        if self._writer is not None and not self._writer.done():
            return
        if self._write_queue.empty():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, snapshot write deferred to next flush")
            return
        self._writer = loop.create_task(self._drain_writes())

    async def _drain_writes(self) -> None:
        """Write queued snapshots one at a time, oldest first.

        When several payloads are queued only the newest is written; the
        older ones are already superseded.
        """
        while not self._write_queue.empty():
            payload = self._write_queue.get_nowait()
            while not self._write_queue.empty():
                self._write_queue.task_done()
                payload = self._write_queue.get_nowait()

            try:
                result = await self.storage.write(self.storage_key, payload)
                if not result.ok:
                    await self._report_persist_failure(result)
            finally:
                self._write_queue.task_done()

    async def _report_persist_failure(self, result: StorageResult) -> None:
        logger.warning(f"State snapshot not persisted to '{self.storage_key}': {result.error}")
        if self.event_bus is not None:
            await self.event_bus.publish(
                events.TOPIC_STATE_PERSIST_FAILED,
                events.create_persist_failed_event(self.storage_key, result.error),
            )

    async def flush(self) -> None:
        """Wait until every queued snapshot write has completed."""
        self._ensure_writer()
        await self._write_queue.join()

    async def aclose(self) -> None:
        """Drain pending writes and stop the writer."""
        await self.flush()
        if self._writer is not None:
            await self._writer
            self._writer = None
