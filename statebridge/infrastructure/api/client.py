"""
Request client for the remote API.

Every response must be an envelope ``{success, data, error}``; the client
returns the unwrapped ``data`` or raises :class:`RequestFailure`. No retries
happen here, that is the caller's call.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from .envelope import ApiEnvelope, parse_envelope
from .errors import (
    DEFAULT_FAILURE_MESSAGE,
    EnvelopeValidationFailure,
    RequestFailure,
    TransportFailure,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HEADERS: Dict[str, str] = {"Content-Type": "application/json"}

# Default for ``body``: nothing is sent. An explicit None is sent as JSON null.
NO_BODY: Any = object()


class RequestClient:
    """Issues JSON requests against a base URL and unwraps the envelope.

    Usage:
        async with RequestClient("https://api.example.com") as client:
            user = await client.request("/users/me")
            created = await client.post("/items", {"name": "x"})
    """

    def __init__(
        self,
        base_url: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Prefix for every request path; empty sends paths as-is
            http_client: Transport to use; one is created (and owned) if omitted
        """
        self.base_url = base_url or ""
        self._http = http_client or httpx.AsyncClient()
        self._owns_http = http_client is None

    async def __aenter__(self) -> "RequestClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    def build_url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        body: Any = NO_BODY,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        response_model: Optional[Type[T]] = None,
    ) -> Any:
        """Send a request and return the envelope's ``data``.

        Args:
            path: Appended to the base URL
            method: HTTP method
            body: JSON-serializable request body; omitted when not given, None is sent as ``null``
            headers: Extra headers; Content-Type stays application/json
            params: Query string parameters
            response_model: Optional type the payload is validated against

        Raises:
            TransportFailure: Network error or non-success HTTP status
            EnvelopeValidationFailure: Envelope unsuccessful, malformed or without data
        """
        method = method.upper()
        merged_headers = {
            name: value
            for name, value in (headers or {}).items()
            if name.lower() != "content-type"
        }
        merged_headers.update(DEFAULT_HEADERS)
        content = json.dumps(body) if body is not NO_BODY else None

        try:
            response = await self._http.request(
                method,
                self.build_url(path),
                headers=merged_headers,
                params=params,
                content=content,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(f"{method} {path} transport error: {exc}")
            raise TransportFailure(path=path) from exc

        envelope = self._decode(response, method, path)

        if not response.is_success:
            message = envelope.error if envelope is not None else None
            logger.warning(f"{method} {path} returned HTTP {response.status_code}: {message or '-'}")
            raise TransportFailure(message, status_code=response.status_code, path=path)

        if envelope is None:
            raise EnvelopeValidationFailure(
                DEFAULT_FAILURE_MESSAGE, status_code=response.status_code, path=path
            )

        if not envelope.is_usable:
            logger.info(
                f"{method} {path} unusable envelope (success={envelope.success}, "
                f"has_data={envelope.has_data}): {envelope.error or '-'}"
            )
            raise EnvelopeValidationFailure(
                envelope.error, status_code=response.status_code, path=path
            )

        if response_model is None:
            return envelope.data

        try:
            return TypeAdapter(response_model).validate_python(envelope.data)
        except ValidationError as exc:
            logger.warning(f"{method} {path} payload did not match {response_model!r}: {exc}")
            raise EnvelopeValidationFailure(
                status_code=response.status_code, path=path
            ) from exc

    async def post(
        self,
        path: str,
        body: Any,
        *,
        headers: Optional[Mapping[str, str]] = None,
        response_model: Optional[Type[Any]] = None,
    ) -> Any:
        """POST ``body`` as JSON; None is sent as ``null``."""
        return await self.request(
            path,
            method="POST",
            body=body,
            headers=headers,
            response_model=response_model,
        )

    async def delete_(
        self,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        response_model: Optional[Type[Any]] = None,
    ) -> Any:
        """Send a DELETE request."""
        return await self.request(
            path,
            method="DELETE",
            headers=headers,
            response_model=response_model,
        )

    @staticmethod
    def _decode(response: httpx.Response, method: str, path: str) -> Optional[ApiEnvelope[Any]]:
        """Parse the body as an envelope, or None when it is not one."""
        try:
            return parse_envelope(response.json())
        except (ValueError, ValidationError) as exc:
            # json.JSONDecodeError is a ValueError
            logger.debug(f"{method} {path} body is not an envelope: {exc}")
            return None


__all__ = ["RequestClient", "RequestFailure", "DEFAULT_HEADERS", "NO_BODY"]
