"""WebChangeDetector v2 API client."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from wcd_sync.adapters.webchangedetector.models import ApiResult, ApiResultKind
from wcd_sync.config.integrations import DEFAULT_WCD_API_URL

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from typing import Self

logger = logging.getLogger(__name__)

PLUGIN_SLUG = "webchangedetector-official"
UPDATE_REQUIRED_MESSAGE = "plugin_update_required"

# The API answers 500 here while a freshly created account is not activated yet.
ACCOUNT_ENDPOINTS = frozenset({"account", "account-details"})

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_INTERNAL_SERVER_ERROR = 500


class WebChangeDetectorClientError(Exception):
    """Base exception for WebChangeDetector client errors."""


def endpoint_path(endpoint: str) -> str:
    """Map an action name to its URL path (``account_details`` -> ``account-details``)."""
    return endpoint.strip().strip("/").replace("_", "-")


def classify_response(endpoint: str, status_code: int, body: str) -> ApiResult:
    """Turn a raw HTTP response into a tagged :class:`ApiResult`.

    Args:
        endpoint: Action path the request was sent to
        status_code: HTTP status code
        body: Raw response text

    Returns:
        ApiResult with the failure kind, or PAYLOAD carrying the decoded JSON
        (raw text when the body is not JSON)
    """
    try:
        decoded: Any = json.loads(body)
        is_json = True
    except ValueError:
        decoded = None
        is_json = False

    if (
        status_code == HTTP_BAD_REQUEST
        and isinstance(decoded, dict)
        and decoded.get("message") == UPDATE_REQUIRED_MESSAGE
    ):
        return ApiResult(kind=ApiResultKind.UPDATE_REQUIRED, status_code=status_code)

    if status_code == HTTP_INTERNAL_SERVER_ERROR and endpoint_path(endpoint) in ACCOUNT_ENDPOINTS:
        return ApiResult(kind=ApiResultKind.NEEDS_ACTIVATION, status_code=status_code)

    if status_code == HTTP_UNAUTHORIZED:
        return ApiResult(kind=ApiResultKind.UNAUTHORIZED, status_code=status_code)

    payload = decoded if is_json else body
    return ApiResult(kind=ApiResultKind.PAYLOAD, payload=payload, status_code=status_code)


class WebChangeDetectorClient:
    """Async HTTP client for the WebChangeDetector v2 API.

    No call is retried. A failed sync becomes eligible again once the rate
    gate interval elapses.
    """

    def __init__(
        self,
        api_token: str,
        *,
        domain: str,
        api_url: str = DEFAULT_WCD_API_URL,
        wp_id: int = 1,
        plugin_version: str = "4.0.0",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_token: Bearer token; an empty token short-circuits every call
            domain: Website domain sent for identification
            api_url: Base URL of the v2 API
            wp_id: Identifier of the acting WordPress user
            plugin_version: Version reported for compatibility checks
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.api_token = api_token
        self.domain = domain.rstrip("/")
        self.api_url = api_url.rstrip("/") + "/"
        self.wp_id = wp_id
        self.plugin_version = plugin_version
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers=self.default_headers(),
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise WebChangeDetectorClientError(
                "Client not initialized. Use async context manager."
            )
        return self._client

    def default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_token}",
            "x-wcd-domain": self.domain,
            "x-wcd-wp-id": str(self.wp_id),
            "x-wcd-plugin": f"{PLUGIN_SLUG}/{self.plugin_version}",
        }

    def _build_body(self, body: Mapping[str, Any] | None) -> dict[str, Any]:
        data = dict(body or {})
        data["wp_plugin_version"] = self.plugin_version
        data["domain"] = self.domain
        data["wp_id"] = self.wp_id
        return data

    async def call(
        self,
        endpoint: str,
        method: str = "POST",
        body: Mapping[str, Any] | None = None,
    ) -> ApiResult:
        """Send one request and classify the outcome.

        Args:
            endpoint: Action name, e.g. ``sync_urls`` or ``websites/12``
            method: HTTP method
            body: Request data; sent as query string for GET

        Returns:
            Tagged ApiResult. Transport problems come back as TRANSPORT_ERROR
            rather than raising.
        """
        if not self.api_token:
            logger.warning("wcd_api_no_credential", extra={"endpoint": endpoint})
            return ApiResult(kind=ApiResultKind.NO_CREDENTIAL)

        path = endpoint_path(endpoint)
        data = self._build_body(body)
        method = method.upper()

        request_kwargs: dict[str, Any] = {}
        if method == "GET":
            request_kwargs["params"] = {
                key: value
                for key, value in data.items()
                if isinstance(value, str | int | float | bool)
            }
        else:
            request_kwargs["json"] = data

        logger.debug("wcd_api_request", extra={"endpoint": path, "method": method})
        try:
            response = await self.client.request(method, path, **request_kwargs)
        except httpx.TransportError as exc:
            logger.warning(
                "wcd_api_transport_error",
                extra={"endpoint": path, "method": method, "error": str(exc)},
            )
            return ApiResult(kind=ApiResultKind.TRANSPORT_ERROR, error=str(exc))

        result = classify_response(path, response.status_code, response.text)
        if not result.ok:
            logger.warning(
                "wcd_api_call_rejected",
                extra={
                    "endpoint": path,
                    "status_code": response.status_code,
                    "result_kind": result.kind.value,
                },
            )
        return result

    async def call_many(
        self,
        endpoint: str,
        bodies: Sequence[Mapping[str, Any]],
        method: str = "POST",
    ) -> list[ApiResult]:
        """Fan out one request per body concurrently.

        Sub-requests never cancel each other; the returned list has one
        result per body, in input order.
        """
        if not bodies:
            return []
        return list(
            await asyncio.gather(*(self.call(endpoint, method, body) for body in bodies))
        )

    async def get_account(self) -> ApiResult:
        return await self.call("account", "GET")

    async def get_websites(self) -> ApiResult:
        return await self.call("websites", "GET")

    async def update_website(self, website_id: str, data: Mapping[str, Any]) -> ApiResult:
        return await self.call(f"websites/{website_id}", "PUT", data)

    async def sync_urls(
        self,
        collection_id: str,
        chunks: Sequence[Mapping[str, list[dict[str, str]]]],
    ) -> list[ApiResult]:
        """Upload inventory chunks, one sub-request per chunk."""
        bodies = [{"collection_id": collection_id, "urls": dict(chunk)} for chunk in chunks]
        return await self.call_many("sync-urls", bodies)

    async def start_sync(self, collection_id: str, *, delete_missing_urls: bool) -> ApiResult:
        return await self.call(
            "start-sync",
            "POST",
            {"collection_id": collection_id, "delete_missing_urls": delete_missing_urls},
        )
