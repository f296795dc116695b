"""Tests for RequestClient envelope handling over a mocked transport."""

import asyncio
import json

import httpx
import pytest
from pydantic import BaseModel, ValidationError

from statebridge.infrastructure.api import (
    DEFAULT_FAILURE_MESSAGE,
    EnvelopeValidationFailure,
    RequestClient,
    RequestFailure,
    TransportFailure,
)

from conftest import BASE_URL, mock_http


class Item(BaseModel):
    id: int
    name: str


def respond_with(status: int = 200, **kwargs):
    """Handler that records requests and answers with a fixed response."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status, **kwargs)

    return handler, seen


# ===========================================================================
# Envelope validation
# ===========================================================================

class TestEnvelope:

    @pytest.mark.asyncio
    async def test_success_returns_unwrapped_data(self):
        handler, _ = respond_with(json={"success": True, "data": {"x": 1}})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            assert await client.request("/things") == {"x": 1}

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope_uses_server_message(self):
        handler, _ = respond_with(json={"success": False, "error": "bad"})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            with pytest.raises(EnvelopeValidationFailure) as excinfo:
                await client.request("/things")
        assert str(excinfo.value) == "bad"
        assert excinfo.value.status_code == 200
        assert excinfo.value.path == "/things"

    @pytest.mark.asyncio
    async def test_success_without_data_fails_generically(self):
        handler, _ = respond_with(json={"success": True})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            with pytest.raises(RequestFailure) as excinfo:
                await client.request("/things")
        assert str(excinfo.value) == DEFAULT_FAILURE_MESSAGE

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope_without_message(self):
        handler, _ = respond_with(json={"success": False, "data": {"x": 1}})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            with pytest.raises(EnvelopeValidationFailure, match=DEFAULT_FAILURE_MESSAGE):
                await client.request("/things")

    @pytest.mark.asyncio
    async def test_explicit_null_data_counts_as_present(self):
        handler, _ = respond_with(json={"success": True, "data": None})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            assert await client.request("/things") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"success": "yes", "data": 1},
        {"data": 1},
        [1, 2, 3],
    ])
    async def test_body_that_is_not_an_envelope(self, body):
        handler, _ = respond_with(json=body)
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            with pytest.raises(EnvelopeValidationFailure, match=DEFAULT_FAILURE_MESSAGE):
                await client.request("/things")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        handler, _ = respond_with(text="<html>oops</html>")
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            with pytest.raises(EnvelopeValidationFailure, match=DEFAULT_FAILURE_MESSAGE):
                await client.request("/things")


# ===========================================================================
# Transport failures
# ===========================================================================

class TestTransport:

    @pytest.mark.asyncio
    async def test_error_status_carries_envelope_message(self):
        handler, _ = respond_with(404, json={"success": False, "error": "not found"})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            with pytest.raises(TransportFailure) as excinfo:
                await client.request("/missing")
        assert str(excinfo.value) == "not found"
        assert excinfo.value.status_code == 404

    @pytest.mark.asyncio
    async def test_error_status_even_with_successful_envelope(self):
        handler, _ = respond_with(500, json={"success": True, "data": {"x": 1}})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            with pytest.raises(TransportFailure, match=DEFAULT_FAILURE_MESSAGE):
                await client.request("/things")

    @pytest.mark.asyncio
    async def test_error_status_with_plain_text_body(self):
        handler, _ = respond_with(502, text="Bad gateway")
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            with pytest.raises(TransportFailure) as excinfo:
                await client.request("/things")
        assert excinfo.value.status_code == 502
        assert excinfo.value.message == DEFAULT_FAILURE_MESSAGE

    @pytest.mark.asyncio
    async def test_network_error_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            with pytest.raises(TransportFailure) as excinfo:
                await client.request("/things")
        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
        assert excinfo.value.status_code is None

    @pytest.mark.asyncio
    async def test_malformed_url_is_wrapped(self):
        handler, seen = respond_with(json={"success": True, "data": 1})
        async with mock_http(handler) as http:
            client = RequestClient("https://api.test:notaport", http_client=http)
            with pytest.raises(TransportFailure) as excinfo:
                await client.request("/things")
        assert isinstance(excinfo.value.__cause__, httpx.InvalidURL)
        assert excinfo.value.path == "/things"
        assert seen == []

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        started = asyncio.Event()

        async def handler(request):
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(200, json={"success": True, "data": 1})

        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            task = asyncio.create_task(client.request("/slow"))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task


# ===========================================================================
# Request building
# ===========================================================================

class TestRequestBuilding:

    @pytest.mark.asyncio
    async def test_get_appends_path_to_base_url(self):
        handler, seen = respond_with(json={"success": True, "data": []})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL + "/v1", http_client=http)
            await client.request("/items", params={"page": 2})

        request = seen[0]
        assert request.method == "GET"
        assert str(request.url) == "https://api.test/v1/items?page=2"
        assert request.headers["content-type"] == "application/json"
        assert request.content == b""

    @pytest.mark.asyncio
    async def test_post_serializes_body(self):
        handler, seen = respond_with(json={"success": True, "data": {"id": 1}})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            result = await client.post("/items", {"name": "lamp", "tags": ["a"]})

        assert result == {"id": 1}
        request = seen[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"name": "lamp", "tags": ["a"]}
        assert request.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_explicit_none_body_is_sent_as_null(self):
        handler, seen = respond_with(json={"success": True, "data": None})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            assert await client.post("/items", None) is None
            await client.request("/items", method="PUT", body=None)

        assert [request.content for request in seen] == [b"null", b"null"]
        assert seen[1].method == "PUT"

    @pytest.mark.asyncio
    async def test_delete_sets_method(self):
        handler, seen = respond_with(json={"success": True, "data": {"deleted": True}})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            assert await client.delete_("/items/7") == {"deleted": True}

        assert seen[0].method == "DELETE"
        assert str(seen[0].url) == "https://api.test/items/7"

    @pytest.mark.asyncio
    async def test_caller_headers_cannot_drop_json_content_type(self):
        handler, seen = respond_with(json={"success": True, "data": 1})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            await client.request(
                "/items",
                headers={"content-type": "text/plain", "X-Trace": "abc"},
            )

        headers = seen[0].headers
        assert headers.get_list("content-type") == ["application/json"]
        assert headers["x-trace"] == "abc"

    @pytest.mark.asyncio
    async def test_empty_base_url_sends_relative_paths(self):
        handler, seen = respond_with(json={"success": True, "data": 1})
        async with mock_http(handler, base_url="https://relative.test") as http:
            client = RequestClient(http_client=http)
            await client.request("/ping")

        assert str(seen[0].url) == "https://relative.test/ping"


# ===========================================================================
# Typed payloads
# ===========================================================================

class TestResponseModel:

    @pytest.mark.asyncio
    async def test_payload_validated_into_model(self):
        handler, _ = respond_with(json={"success": True, "data": {"id": "7", "name": "lamp"}})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            item = await client.request("/items/7", response_model=Item)
        assert item == Item(id=7, name="lamp")

    @pytest.mark.asyncio
    async def test_list_payload(self):
        handler, _ = respond_with(json={"success": True, "data": [{"id": 1, "name": "a"}]})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            items = await client.request("/items", response_model=list[Item])
        assert items == [Item(id=1, name="a")]

    @pytest.mark.asyncio
    async def test_payload_mismatch_is_envelope_failure(self):
        handler, _ = respond_with(json={"success": True, "data": {"id": "abc"}})
        async with mock_http(handler) as http:
            client = RequestClient(BASE_URL, http_client=http)
            with pytest.raises(EnvelopeValidationFailure) as excinfo:
                await client.post("/items", {"name": "x"}, response_model=Item)
        assert isinstance(excinfo.value.__cause__, ValidationError)


@pytest.mark.asyncio
async def test_owned_http_client_is_closed():
    client = RequestClient(BASE_URL)
    async with client:
        pass
    assert client._http.is_closed


@pytest.mark.asyncio
async def test_injected_http_client_is_left_open():
    handler, _ = respond_with(json={"success": True, "data": 1})
    async with mock_http(handler) as http:
        async with RequestClient(BASE_URL, http_client=http):
            pass
        assert not http.is_closed
