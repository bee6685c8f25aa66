"""Website details lookup, caching and persistence of sync types."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from tests.conftest import FakeWcdClient, FrozenClock, sync_type_row, website_row
from wcd_sync.adapters.webchangedetector.models import ApiResult, ApiResultKind, WebsiteDetails
from wcd_sync.adapters.webchangedetector.sync.cache import WebsiteDetailsCache
from wcd_sync.adapters.webchangedetector.sync.errors import RemoteApiError, WebsiteNotFoundError
from wcd_sync.adapters.webchangedetector.website import ApiWebsiteConfigStore, match_website


class CountingClient(FakeWcdClient):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.website_fetches = 0

    async def get_websites(self) -> ApiResult:
        self.website_fetches += 1
        return await super().get_websites()


def test_match_website_by_prefix_ignoring_trailing_slash() -> None:
    rows = [
        website_row(website_id=1, domain="other.org"),
        website_row(website_id=2, domain="example.com/"),
    ]
    assert match_website(rows, "example.com/")["id"] == 2
    assert match_website(rows, "missing.net") is None


def test_sync_url_types_decoded_from_json_string() -> None:
    row = website_row()
    row["sync_url_types"] = json.dumps([sync_type_row("posts", "Posts")])
    details = WebsiteDetails.model_validate(row)
    assert details.sync_url_types[0].content_type_slug == "posts"
    assert details.id == "7"


@pytest.mark.asyncio
async def test_cached_details_reused_until_force_refresh() -> None:
    client = CountingClient()
    store = ApiWebsiteConfigStore("example.com")

    await store.get_website_details(client)
    await store.get_website_details(client)
    assert client.website_fetches == 1

    await store.get_website_details(client, force_refresh=True)
    assert client.website_fetches == 2


@pytest.mark.asyncio
async def test_cache_expires_after_ttl() -> None:
    clock = FrozenClock()
    cache = WebsiteDetailsCache(ttl=timedelta(minutes=5), clock=clock)
    client = CountingClient()
    store = ApiWebsiteConfigStore("example.com", cache)

    await store.get_website_details(client)
    clock.now += timedelta(minutes=6)
    await store.get_website_details(client)

    assert client.website_fetches == 2


@pytest.mark.asyncio
async def test_rejected_lookup_raises_remote_error() -> None:
    client = FakeWcdClient()
    client.websites_result = ApiResult(kind=ApiResultKind.UNAUTHORIZED, status_code=401)

    with pytest.raises(RemoteApiError) as excinfo:
        await ApiWebsiteConfigStore("example.com").get_website_details(client)

    assert excinfo.value.result.kind is ApiResultKind.UNAUTHORIZED
    assert excinfo.value.endpoint == "websites"


@pytest.mark.asyncio
async def test_unknown_domain_raises_not_found() -> None:
    client = FakeWcdClient([website_row(domain="other.org")])
    with pytest.raises(WebsiteNotFoundError):
        await ApiWebsiteConfigStore("example.com").get_website_details(client)


@pytest.mark.asyncio
async def test_saving_sync_types_updates_cache() -> None:
    client = FakeWcdClient()
    store = ApiWebsiteConfigStore("example.com")
    details = await store.get_website_details(client)
    new_types = [*details.sync_url_types]

    updated = await store.save_sync_url_types(client, details, new_types)

    assert client.updates[0][0] == "7"
    assert store.cache.get() is updated
