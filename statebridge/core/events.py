"""Canonical event definitions for statebridge."""

from __future__ import annotations

import time
from typing import Any, Dict

from .event_bus import EventPayload

# State container lifecycle
TOPIC_STATE_HYDRATED = "state.hydrated"
TOPIC_STATE_PERSIST_FAILED = "state.persist_failed"


def create_state_hydrated_event(
    storage_key: str,
    restored: bool,
    outcome: str,
    replayed: int = 0,
) -> EventPayload:
    """Create a state hydrated event.

    Args:
        storage_key: Key the snapshot was read from
        restored: Whether a persisted snapshot was merged into memory
        outcome: Storage outcome of the read ("found", "missing", "error", "invalid")
        replayed: Number of mutations re-applied on top of the snapshot
    """
    return {
        "storage_key": storage_key,
        "restored": restored,
        "outcome": outcome,
        "replayed": replayed,
        "ts": time.time(),
    }


def create_persist_failed_event(storage_key: str, error: str | None) -> EventPayload:
    """Create a persist failed event."""
    payload: Dict[str, Any] = {
        "storage_key": storage_key,
        "error": error,
        "ts": time.time(),
    }
    return payload
