"""WordPress REST content store against a mocked REST API."""

from __future__ import annotations

import httpx
import pytest

from wcd_sync.adapters.webchangedetector.sync.errors import ContentStoreError
from wcd_sync.adapters.webchangedetector.sync.locales import LocaleMerger
from wcd_sync.adapters.webchangedetector.sync.records import ContentType
from wcd_sync.adapters.wordpress.client import WordPressRestStore

POSTS = ContentType(name="post", label="Posts", rest_base="posts")
CATEGORIES = ContentType(
    name="category", label="Categories", rest_base="categories", is_taxonomy=True
)


class FakeWordPress:
    """Minimal REST API: 250 posts, 3 terms, language aware root."""

    def __init__(self, *, posts: int = 250, settings_status: int = 200) -> None:
        self.posts = [
            {
                "id": index,
                "link": f"https://example.com/?p={index}",
                "status": "publish",
                "title": {"rendered": f"Post &amp; {index}"},
            }
            for index in range(1, posts + 1)
        ]
        self.settings_status = settings_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params
        lang = params.get("lang")

        if path == "/wp-json/":
            home = f"https://example.com/{lang}/" if lang else "https://example.com/"
            return httpx.Response(200, json={"name": "Example", "home": home})
        if path == "/wp-json/wp/v2/settings":
            if self.settings_status != 200:
                return httpx.Response(self.settings_status, json={"code": "rest_forbidden"})
            return httpx.Response(200, json={"show_on_front": "page", "page_on_front": "12"})
        if path == "/wp-json/wp/v2/types":
            return httpx.Response(
                200,
                json={
                    "post": {"slug": "post", "name": "Posts", "rest_base": "posts"},
                    "page": {"slug": "page", "name": "Pages", "rest_base": "pages"},
                    "attachment": {"slug": "attachment", "name": "Media", "rest_base": "media"},
                    "secret": {
                        "slug": "secret",
                        "name": "Secrets",
                        "rest_base": "secrets",
                        "viewable": False,
                    },
                },
            )
        if path == "/wp-json/wp/v2/taxonomies":
            return httpx.Response(
                200,
                json={
                    "category": {
                        "slug": "category",
                        "name": "Categories",
                        "rest_base": "categories",
                    },
                    "nav_menu": {"slug": "nav_menu", "name": "Menus", "rest_base": "menus"},
                },
            )
        if path == "/wp-json/wp/v2/posts":
            offset = int(params["offset"])
            per_page = int(params["per_page"])
            if offset >= len(self.posts) and offset > 0:
                return httpx.Response(400, json={"code": "rest_post_invalid_page_number"})
            return httpx.Response(200, json=self.posts[offset : offset + per_page])
        if path == "/wp-json/wp/v2/categories":
            terms = [
                {"id": 1, "name": "News", "link": "https://example.com/category/news/"},
                {
                    "id": 2,
                    "name": "Tips &amp; Tricks",
                    "link": "https://example.com/category/tips/",
                },
                {"id": 3, "name": "Orphan", "link": ""},
            ]
            return httpx.Response(200, json=terms)
        return httpx.Response(404, json={"code": "rest_no_route"})


def _store(api: FakeWordPress, **kwargs) -> WordPressRestStore:
    return WordPressRestStore(
        "https://example.com/",
        username=kwargs.pop("username", "editor"),
        app_password=kwargs.pop("app_password", "app-pass"),
        transport=httpx.MockTransport(api),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_logical_page_filled_with_rest_sized_requests() -> None:
    api = FakeWordPress(posts=250)

    async with _store(api) as store:
        items = await store.query_posts(POSTS, offset=0, limit=1000)

    assert len(items) == 250
    offsets = [
        (int(r.url.params["offset"]), int(r.url.params["per_page"])) for r in api.requests
    ]
    assert offsets == [(0, 100), (100, 100), (200, 100)]
    assert items[0].title == "Post & 1"
    assert items[0].link == "https://example.com/?p=1"
    assert all(r.url.params["status"] == "publish" for r in api.requests)
    assert api.requests[0].headers["authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_offset_past_end_returns_empty_page() -> None:
    api = FakeWordPress(posts=100)

    async with _store(api) as store:
        items = await store.query_posts(POSTS, offset=1000, limit=1000)

    assert items == []


@pytest.mark.asyncio
async def test_terms_request_includes_empty_terms_and_skip_missing_links() -> None:
    api = FakeWordPress()

    async with _store(api) as store:
        items = await store.query_terms(CATEGORIES, offset=0, limit=500)

    assert [item.title for item in items] == ["News", "Tips & Tricks"]
    assert api.requests[0].url.params["hide_empty"] == "false"


@pytest.mark.asyncio
async def test_content_types_skip_internal_and_mark_hidden() -> None:
    async with _store(FakeWordPress()) as store:
        types = await store.list_content_types()
        taxonomies = await store.list_taxonomies()

    assert [(t.name, t.slug, t.public) for t in types] == [
        ("post", "posts", True),
        ("page", "pages", True),
        ("secret", "secrets", False),
    ]
    assert [(t.name, t.label, t.is_taxonomy) for t in taxonomies] == [
        ("category", "Categories", True)
    ]


@pytest.mark.asyncio
async def test_site_info_reads_reading_settings() -> None:
    async with _store(FakeWordPress()) as store:
        site = await store.site_info()

    assert site.name == "Example"
    assert site.home_url == "https://example.com/"
    assert site.has_static_front_page
    assert site.page_on_front == 12


@pytest.mark.asyncio
async def test_site_info_defaults_when_settings_forbidden() -> None:
    async with _store(FakeWordPress(settings_status=403)) as store:
        site = await store.site_info()

    assert not site.has_static_front_page


@pytest.mark.asyncio
async def test_locale_switch_adds_lang_parameter() -> None:
    api = FakeWordPress(posts=3)

    async with _store(api, locales=["en", "de"]) as store:
        locales = await store.active_locales()
        merger = LocaleMerger(store)
        assert merger.multilingual

        async def enumerate_fn():
            return await store.query_posts(POSTS, offset=0, limit=10)

        items = await merger.merge_locales(enumerate_fn, "post")
        assert store.current_locale() is None

    assert [locale.home_url for locale in locales] == [
        "https://example.com/en/",
        "https://example.com/de/",
    ]
    post_langs = [r.url.params.get("lang") for r in api.requests if r.url.path.endswith("/posts")]
    assert post_langs == ["en", "de"]
    assert len(items) == 3


@pytest.mark.asyncio
async def test_http_failure_raises_content_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    store = WordPressRestStore("https://example.com", transport=httpx.MockTransport(handler))
    async with store:
        with pytest.raises(ContentStoreError):
            await store.query_posts(POSTS, offset=0, limit=10)


@pytest.mark.asyncio
async def test_store_requires_context_manager() -> None:
    with pytest.raises(ContentStoreError):
        await WordPressRestStore("https://example.com").site_info()


@pytest.mark.asyncio
async def test_nested_entry_keeps_shared_client_open() -> None:
    api = FakeWordPress(posts=3)
    store = _store(api)

    async with store:
        async with store:
            await store.query_posts(POSTS, offset=0, limit=10)
        items = await store.query_posts(POSTS, offset=0, limit=10)

    assert len(items) == 3
    with pytest.raises(ContentStoreError):
        await store.site_info()
