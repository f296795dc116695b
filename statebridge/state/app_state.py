"""Application state snapshot and its persisted subset."""

from __future__ import annotations

import copy
import json
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Theme(str, Enum):
    """Supported colour schemes."""
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class HydrationPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    HYDRATING = "hydrating"
    READY = "ready"


class AppState(BaseModel):
    """Immutable snapshot of the in-process application state.

    Only ``theme`` and ``data`` survive restarts; ``is_loading`` and ``error``
    are transient.
    """
    model_config = ConfigDict(frozen=True)

    theme: Theme = Theme.SYSTEM
    is_loading: bool = False
    error: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    def persisted(self) -> "PersistedSnapshot":
        return PersistedSnapshot(theme=self.theme, data=self.data)

    def same_as(self, other: "AppState") -> bool:
        """True when both states would render and persist identically.

        Unlike ``==`` this tells ``1``, ``1.0`` and ``True`` apart inside ``data``.
        """
        return (
            self.theme is other.theme
            and self.is_loading is other.is_loading
            and self.error == other.error
            and json.dumps(self.data) == json.dumps(other.data)
        )

    def detached(self) -> "AppState":
        """Copy whose ``data`` can be modified without touching this state."""
        return self.model_copy(update={"data": copy.deepcopy(self.data)})


class PersistedSnapshot(BaseModel):
    """Stored shape: ``{"theme": str, "data": object}``."""
    model_config = ConfigDict(extra='ignore')

    theme: Theme = Theme.SYSTEM
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> str:
        """Encode for storage.

        Raises:
            TypeError: If a data value is not JSON-serializable
            ValueError: If a data value contains a circular reference
        """
        return json.dumps({"theme": self.theme.value, "data": self.data})

    @classmethod
    def from_json(cls, raw: str) -> "PersistedSnapshot":
        """Decode a stored snapshot.

        Raises:
            ValueError: If ``raw`` is not JSON or not a valid snapshot
        """
        return cls.model_validate_json(raw)
