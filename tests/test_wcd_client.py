"""Tests for the WebChangeDetector API client and response classification."""

from __future__ import annotations

import json
import unittest

import httpx
import pytest

from wcd_sync.adapters.webchangedetector.client import (
    WebChangeDetectorClient,
    WebChangeDetectorClientError,
    classify_response,
    endpoint_path,
)
from wcd_sync.adapters.webchangedetector.models import ApiResultKind


class TestClassifyResponse(unittest.TestCase):
    def test_unauthorized_on_any_endpoint(self):
        for endpoint in ("sync-urls", "account", "websites"):
            result = classify_response(endpoint, 401, '{"message": "Unauthenticated."}')
            assert result.kind is ApiResultKind.UNAUTHORIZED
            assert result.payload is None

    def test_server_error_on_account_means_activation(self):
        assert classify_response("account", 500, "").kind is ApiResultKind.NEEDS_ACTIVATION
        assert (
            classify_response("account_details", 500, "").kind
            is ApiResultKind.NEEDS_ACTIVATION
        )

    def test_server_error_elsewhere_is_payload(self):
        result = classify_response("sync-urls", 500, '{"error": "boom"}')
        assert result.kind is ApiResultKind.PAYLOAD
        assert result.payload == {"error": "boom"}
        assert not result.is_success

    def test_plugin_update_required(self):
        body = json.dumps({"message": "plugin_update_required"})
        assert classify_response("websites", 400, body).kind is ApiResultKind.UPDATE_REQUIRED

    def test_other_bad_request_is_payload(self):
        result = classify_response("websites", 400, '{"message": "invalid"}')
        assert result.kind is ApiResultKind.PAYLOAD
        assert result.status_code == 400

    def test_non_json_body_returned_raw(self):
        result = classify_response("start-sync", 200, "queued")
        assert result.kind is ApiResultKind.PAYLOAD
        assert result.payload == "queued"
        assert result.is_success

    def test_endpoint_path_is_kebab_case(self):
        assert endpoint_path("sync_urls") == "sync-urls"
        assert endpoint_path("/account_details/") == "account-details"


def _client(handler, **kwargs) -> WebChangeDetectorClient:
    return WebChangeDetectorClient(
        kwargs.pop("api_token", "token-123"),
        domain="example.com/",
        api_url="https://api.test/api/v2",
        wp_id=3,
        plugin_version="4.0.0",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_call_sends_identity_headers_and_body_fields() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    async with _client(handler) as client:
        result = await client.call("sync_urls", "POST", {"collection_id": "c1"})

    assert result.kind is ApiResultKind.PAYLOAD
    assert result.payload == {"ok": True}
    request = seen[0]
    assert request.url.path == "/api/v2/sync-urls"
    assert request.headers["authorization"] == "Bearer token-123"
    assert request.headers["accept"] == "application/json"
    assert request.headers["x-wcd-domain"] == "example.com"
    assert request.headers["x-wcd-wp-id"] == "3"
    assert request.headers["x-wcd-plugin"] == "webchangedetector-official/4.0.0"
    body = json.loads(request.content)
    assert body == {
        "collection_id": "c1",
        "wp_plugin_version": "4.0.0",
        "domain": "example.com",
        "wp_id": 3,
    }


@pytest.mark.asyncio
async def test_get_sends_body_as_query_string() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": []})

    async with _client(handler) as client:
        await client.get_websites()

    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/api/v2/websites"
    assert request.url.params["domain"] == "example.com"
    assert request.content == b""


@pytest.mark.asyncio
async def test_missing_token_short_circuits_without_network() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, json={})

    async with _client(handler, api_token="") as client:
        result = await client.start_sync("c1", delete_missing_urls=True)

    assert result.kind is ApiResultKind.NO_CREDENTIAL
    assert calls == 0


@pytest.mark.asyncio
async def test_transport_error_is_reported_not_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    async with _client(handler) as client:
        result = await client.get_account()

    assert result.kind is ApiResultKind.TRANSPORT_ERROR
    assert "timed out" in (result.error or "")


@pytest.mark.asyncio
async def test_sync_urls_fans_out_one_request_per_chunk() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        bodies.append(body)
        if "types%%Broken" in body["urls"]:
            return httpx.Response(401, json={"message": "Unauthenticated."})
        return httpx.Response(200, json={"received": True})

    chunks = [
        {"types%%Posts": [{"url": "example.com/a", "html_title": "A"}]},
        {"types%%Broken": [{"url": "example.com/b", "html_title": "B"}]},
        {"types%%Pages": [{"url": "example.com/c", "html_title": "C"}]},
    ]
    async with _client(handler) as client:
        results = await client.sync_urls("coll-1", chunks)

    assert [result.kind for result in results] == [
        ApiResultKind.PAYLOAD,
        ApiResultKind.UNAUTHORIZED,
        ApiResultKind.PAYLOAD,
    ]
    assert len(bodies) == 3
    assert all(body["collection_id"] == "coll-1" for body in bodies)


@pytest.mark.asyncio
async def test_update_website_uses_put() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": 7})

    async with _client(handler) as client:
        result = await client.update_website("7", {"sync_url_types": []})

    assert result.ok
    assert seen[0].method == "PUT"
    assert seen[0].url.path == "/api/v2/websites/7"


@pytest.mark.asyncio
async def test_client_requires_context_manager() -> None:
    client = _client(lambda request: httpx.Response(200))
    with pytest.raises(WebChangeDetectorClientError):
        await client.get_account()
