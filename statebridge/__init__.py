"""statebridge package.

Persisted client-side application state plus an envelope-validating request
client for the remote API.
"""

from .core.event_bus import EventBus
from .infrastructure.api import (
    EnvelopeValidationFailure,
    RequestClient,
    RequestFailure,
    TransportFailure,
)
from .infrastructure.persistence import DuckDBStorage, MemoryStorage, StorageAdapter
from .state import AppState, HydrationPhase, StateContainer, Store, Theme

__version__ = "0.1.0"

__all__ = [
    "AppState",
    "DuckDBStorage",
    "EnvelopeValidationFailure",
    "EventBus",
    "HydrationPhase",
    "MemoryStorage",
    "RequestClient",
    "RequestFailure",
    "StateContainer",
    "StorageAdapter",
    "Store",
    "Theme",
    "TransportFailure",
]
