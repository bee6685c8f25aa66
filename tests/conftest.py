"""Pytest configuration and shared fakes for the sync engine tests."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import pytest

from wcd_sync.adapters.webchangedetector.models import ApiResult, ApiResultKind
from wcd_sync.adapters.webchangedetector.sync.errors import ContentStoreError
from wcd_sync.adapters.webchangedetector.sync.records import (
    ContentType,
    Locale,
    RawContent,
    SiteInfo,
)

POSTS = ContentType(name="post", label="Posts", rest_base="posts")
PAGES = ContentType(name="page", label="Pages", rest_base="pages")
CATEGORIES = ContentType(
    name="category", label="Categories", rest_base="categories", is_taxonomy=True
)

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def make_items(prefix: str, count: int, *, start: int = 1) -> list[RawContent]:
    return [
        RawContent(
            id=f"{prefix}-{index}",
            title=f"{prefix.title()} {index}",
            link=f"https://example.com/{prefix}/{index}/",
        )
        for index in range(start, start + count)
    ]


def sync_type_row(slug: str, label: str, type_slug: str = "types") -> dict[str, str]:
    return {
        "url_type_slug": type_slug,
        "url_type_name": label,
        "post_type_slug": slug,
        "post_type_name": label,
    }


def website_row(
    *,
    website_id: int = 7,
    domain: str = "example.com",
    sync_url_types: list[dict[str, str]] | None = None,
    allowances: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "id": website_id,
        "domain": domain,
        "sync_url_types": sync_url_types if sync_url_types is not None else [],
        "allowances": allowances or {},
    }


class FakeContentStore:
    """In-memory content store without a multilingual layer."""

    def __init__(
        self,
        *,
        content_types: list[ContentType] | None = None,
        taxonomies: list[ContentType] | None = None,
        content: dict[str, list[RawContent]] | None = None,
        site: SiteInfo | None = None,
    ) -> None:
        self.content_types = content_types if content_types is not None else [POSTS, PAGES]
        self.taxonomies = taxonomies if taxonomies is not None else [CATEGORIES]
        self.content = content or {}
        self.site = site or SiteInfo(name="Example", home_url="https://example.com")
        self.queries: list[tuple[str, int, int]] = []
        self.fail_on: set[str] = set()

    async def list_content_types(self) -> list[ContentType]:
        return list(self.content_types)

    async def list_taxonomies(self) -> list[ContentType]:
        return list(self.taxonomies)

    def _page(self, category: ContentType, offset: int, limit: int) -> list[RawContent]:
        self.queries.append((category.name, offset, limit))
        if category.name in self.fail_on:
            raise ContentStoreError(f"{category.name} unavailable")
        return self.content.get(category.name, [])[offset : offset + limit]

    async def query_posts(
        self, content_type: ContentType, *, offset: int, limit: int
    ) -> list[RawContent]:
        return self._page(content_type, offset, limit)

    async def query_terms(
        self, taxonomy: ContentType, *, offset: int, limit: int
    ) -> list[RawContent]:
        return self._page(taxonomy, offset, limit)

    async def site_info(self) -> SiteInfo:
        return self.site


class FakeMultilingualStore(FakeContentStore):
    """Content store whose results depend on the active locale."""

    def __init__(
        self,
        *,
        locales: list[Locale],
        localized: dict[str, dict[str, list[RawContent]]],
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.locales = locales
        self.localized = localized
        self.locale: str | None = None
        self.switches: list[str | None] = []

    async def active_locales(self) -> list[Locale]:
        return list(self.locales)

    def current_locale(self) -> str | None:
        return self.locale

    def switch_locale(self, code: str | None) -> None:
        self.switches.append(code)
        self.locale = code

    def _page(self, category: ContentType, offset: int, limit: int) -> list[RawContent]:
        self.queries.append((category.name, offset, limit))
        items = self.localized.get(self.locale or "", {}).get(category.name, [])
        return items[offset : offset + limit]


class FakeWcdClient:
    """Records API calls and answers them from canned results."""

    def __init__(self, websites: list[dict[str, Any]] | None = None) -> None:
        self.websites = websites if websites is not None else [website_row()]
        self.websites_result: ApiResult | None = None
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.upload_calls: list[tuple[str, list[dict[str, Any]]]] = []
        self.commits: list[tuple[str, bool]] = []
        self.upload_kinds: dict[int, ApiResultKind] = {}
        self.commit_result = ApiResult(kind=ApiResultKind.PAYLOAD, payload={}, status_code=200)

    async def call(
        self, endpoint: str, method: str = "POST", body: dict[str, Any] | None = None
    ) -> ApiResult:
        return ApiResult(kind=ApiResultKind.PAYLOAD, payload={}, status_code=200)

    async def get_websites(self) -> ApiResult:
        if self.websites_result is not None:
            return self.websites_result
        return ApiResult(
            kind=ApiResultKind.PAYLOAD, payload={"data": self.websites}, status_code=200
        )

    async def update_website(self, website_id: str, data: dict[str, Any]) -> ApiResult:
        self.updates.append((website_id, dict(data)))
        return ApiResult(kind=ApiResultKind.PAYLOAD, payload=data, status_code=200)

    async def sync_urls(
        self, collection_id: str, chunks: list[dict[str, Any]]
    ) -> list[ApiResult]:
        self.upload_calls.append((collection_id, list(chunks)))
        results = []
        for index in range(len(chunks)):
            kind = self.upload_kinds.get(index, ApiResultKind.PAYLOAD)
            status = 200 if kind is ApiResultKind.PAYLOAD else None
            results.append(ApiResult(kind=kind, payload={} if status else None, status_code=status))
        return results

    async def start_sync(self, collection_id: str, *, delete_missing_urls: bool) -> ApiResult:
        self.commits.append((collection_id, delete_missing_urls))
        return self.commit_result

    @property
    def uploaded_keys(self) -> list[str]:
        return [key for _, chunks in self.upload_calls for chunk in chunks for key in chunk]

    @property
    def uploaded_urls(self) -> list[str]:
        return [
            item["url"]
            for _, chunks in self.upload_calls
            for chunk in chunks
            for items in chunk.values()
            for item in items
        ]


def client_factory_for(client: FakeWcdClient):
    @asynccontextmanager
    async def _factory():
        yield client

    return _factory


class InMemorySyncStateStore:
    def __init__(self) -> None:
        self.values: dict[str, datetime] = {}
        self.writes = 0

    async def async_get_timestamp(self, name: str) -> datetime | None:
        return self.values.get(name)

    async def async_set_timestamp(self, name: str, value: datetime) -> None:
        self.writes += 1
        self.values[name] = value


class FrozenClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def wcd_client() -> FakeWcdClient:
    return FakeWcdClient()


@pytest.fixture
def state_store() -> InMemorySyncStateStore:
    return InMemorySyncStateStore()


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "wcd_sync.db")
