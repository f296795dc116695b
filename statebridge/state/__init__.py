"""Application state management.

Architecture:
- AppState: immutable snapshot (theme, loading flag, error slot, data bag)
- StateContainer: owns the snapshot, notifies subscribers, persists {theme, data}
- Store: composition root handing the container and request client to consumers
"""

from .app_state import AppState, HydrationPhase, PersistedSnapshot, Theme
from .container import StateContainer
from .store import Store, build_storage

__all__ = [
    "AppState",
    "HydrationPhase",
    "PersistedSnapshot",
    "StateContainer",
    "Store",
    "Theme",
    "build_storage",
]
