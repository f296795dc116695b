"""Errors raised by the request client."""

from __future__ import annotations

from typing import Optional

DEFAULT_FAILURE_MESSAGE = "Request failed"


class RequestFailure(Exception):
    """A remote call did not produce a usable payload.

    The message is the server's envelope ``error`` when it sent one, otherwise
    a generic fallback.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        path: Optional[str] = None,
    ) -> None:
        self.message = message or DEFAULT_FAILURE_MESSAGE
        self.status_code = status_code
        self.path = path
        super().__init__(self.message)


class TransportFailure(RequestFailure):
    """Network error or non-success HTTP status."""


class EnvelopeValidationFailure(RequestFailure):
    """The response body broke the ``{success, data, error}`` contract."""
