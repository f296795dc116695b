"""Response envelope shared by every API call.

All API responses are wrapped in this envelope:
{ success: bool, data?: T, error?: str }
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class ApiEnvelope(BaseModel, Generic[T]):
    """JSON envelope for all API responses."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None

    @property
    def has_data(self) -> bool:
        # An explicit "data": null counts as present; only a missing key does not
        return "data" in self.model_fields_set

    @property
    def is_usable(self) -> bool:
        return self.success is True and self.has_data


def parse_envelope(body: Any) -> ApiEnvelope[Any]:
    """Validate a decoded JSON body against the envelope shape.

    Raises:
        pydantic.ValidationError: If the body is not an envelope
    """
    return ApiEnvelope[Any].model_validate(body, strict=True)
