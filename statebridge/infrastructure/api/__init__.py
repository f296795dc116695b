"""Remote API access behind the {success, data, error} envelope."""

from statebridge.infrastructure.api.client import DEFAULT_HEADERS, NO_BODY, RequestClient
from statebridge.infrastructure.api.envelope import ApiEnvelope, parse_envelope
from statebridge.infrastructure.api.errors import (
    DEFAULT_FAILURE_MESSAGE,
    EnvelopeValidationFailure,
    RequestFailure,
    TransportFailure,
)

__all__ = [
    "ApiEnvelope",
    "DEFAULT_FAILURE_MESSAGE",
    "DEFAULT_HEADERS",
    "EnvelopeValidationFailure",
    "NO_BODY",
    "RequestClient",
    "RequestFailure",
    "TransportFailure",
    "parse_envelope",
]
