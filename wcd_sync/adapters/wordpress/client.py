"""WordPress REST API content store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from wcd_sync.adapters.webchangedetector.sync.errors import ContentStoreError
from wcd_sync.adapters.webchangedetector.sync.records import (
    ContentType,
    Locale,
    RawContent,
    SiteInfo,
)
from wcd_sync.adapters.wordpress.models import (
    WpPost,
    WpPostType,
    WpReadingSettings,
    WpSiteIndex,
    WpTaxonomy,
    WpTerm,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import Self

logger = logging.getLogger(__name__)

REST_ROOT = "/wp-json/"
REST_PREFIX = "/wp-json/wp/v2"
REST_MAX_PER_PAGE = 100
LOCALE_PARAM = "lang"

# Registered with show_in_rest but never viewable on the front end.
INTERNAL_POST_TYPES = frozenset(
    {
        "attachment",
        "nav_menu_item",
        "wp_block",
        "wp_global_styles",
        "wp_navigation",
        "wp_template",
        "wp_template_part",
        "wp_font_family",
        "wp_font_face",
    }
)
INTERNAL_TAXONOMIES = frozenset(
    {"nav_menu", "wp_pattern_category", "wp_theme", "wp_template_part_area"}
)

# Returned when the offset runs past the last item.
OUT_OF_RANGE_CODES = frozenset({"rest_post_invalid_page_number", "rest_invalid_offset"})


class WordPressRestStore:
    """Async content store backed by the WordPress REST API.

    Doubles as a locale provider when language codes are configured: the
    active code is sent as the ``lang`` query parameter understood by the
    WPML and Polylang REST integrations.
    """

    def __init__(
        self,
        site_url: str,
        *,
        username: str = "",
        app_password: str = "",
        timeout: float = 30.0,
        locales: Sequence[str] = (),
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.site_url = site_url.rstrip("/")
        self.username = username
        self.app_password = app_password
        self.timeout = timeout
        self.locale_codes = tuple(locales)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._locale: str | None = None
        self._locales: list[Locale] | None = None
        self._entered = 0

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.app_password)

    async def __aenter__(self) -> Self:
        """Enter async context; nested entries share one HTTP client."""
        self._entered += 1
        if self._client is not None:
            return self
        auth = httpx.BasicAuth(self.username, self.app_password) if self.has_credentials else None
        self._client = httpx.AsyncClient(
            base_url=self.site_url,
            auth=auth,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        self._locales = None
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context; the last exit closes the client."""
        self._entered = max(0, self._entered - 1)
        if self._entered == 0 and self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client."""
        if self._client is None:
            raise ContentStoreError("WordPress client not initialized. Use async context manager.")
        return self._client

    async def _get(
        self, path: str, params: dict[str, Any] | None = None, *, localized: bool = True
    ) -> httpx.Response:
        query = dict(params or {})
        if localized and self._locale:
            query[LOCALE_PARAM] = self._locale
        try:
            return await self.client.get(path, params=query)
        except httpx.HTTPError as exc:
            raise ContentStoreError(f"GET {path} failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if response.is_error:
            raise ContentStoreError(
                f"GET {response.request.url.path} returned HTTP {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ContentStoreError(
                f"GET {response.request.url.path} returned a non-JSON body"
            ) from exc

    def _edit_context(self) -> dict[str, Any]:
        # Visibility flags are only exposed to authenticated requests.
        return {"context": "edit"} if self.has_credentials else {}

    async def list_content_types(self) -> list[ContentType]:
        data = self._json(await self._get(f"{REST_PREFIX}/types", self._edit_context()))
        if not isinstance(data, dict):
            raise ContentStoreError("Unexpected /types payload")

        content_types: list[ContentType] = []
        for raw in data.values():
            try:
                post_type = WpPostType.model_validate(raw)
            except ValidationError:
                logger.debug("wp_post_type_skipped", extra={"raw": str(raw)[:200]})
                continue
            if post_type.slug in INTERNAL_POST_TYPES:
                continue
            public = post_type.viewable if post_type.viewable is not None else True
            content_types.append(
                ContentType(
                    name=post_type.slug,
                    label=post_type.label,
                    rest_base=post_type.rest_base or post_type.slug,
                    public=public,
                )
            )
        return content_types

    async def list_taxonomies(self) -> list[ContentType]:
        data = self._json(await self._get(f"{REST_PREFIX}/taxonomies", self._edit_context()))
        if not isinstance(data, dict):
            raise ContentStoreError("Unexpected /taxonomies payload")

        taxonomies: list[ContentType] = []
        for raw in data.values():
            try:
                taxonomy = WpTaxonomy.model_validate(raw)
            except ValidationError:
                logger.debug("wp_taxonomy_skipped", extra={"raw": str(raw)[:200]})
                continue
            if taxonomy.slug in INTERNAL_TAXONOMIES:
                continue
            taxonomies.append(
                ContentType(
                    name=taxonomy.slug,
                    label=taxonomy.label,
                    rest_base=taxonomy.rest_base or taxonomy.slug,
                    public=taxonomy.visibility.public if taxonomy.visibility else True,
                    is_taxonomy=True,
                )
            )
        return taxonomies

    async def _collect_page(
        self, path: str, params: dict[str, Any], *, offset: int, limit: int
    ) -> list[dict[str, Any]]:
        """Fill one logical page using REST-sized sub-requests."""
        rows: list[dict[str, Any]] = []
        while len(rows) < limit:
            per_page = min(REST_MAX_PER_PAGE, limit - len(rows))
            response = await self._get(
                path,
                {
                    **params,
                    "per_page": per_page,
                    "offset": offset + len(rows),
                    "orderby": "id",
                    "order": "asc",
                },
            )
            if response.status_code == httpx.codes.BAD_REQUEST and _error_code(
                response
            ) in OUT_OF_RANGE_CODES:
                break
            data = self._json(response)
            if not isinstance(data, list):
                raise ContentStoreError(f"Unexpected payload from {path}")
            rows.extend(row for row in data if isinstance(row, dict))
            if len(data) < per_page:
                break
        return rows

    async def query_posts(
        self, content_type: ContentType, *, offset: int, limit: int
    ) -> list[RawContent]:
        rows = await self._collect_page(
            f"{REST_PREFIX}/{content_type.slug}",
            {"status": "publish", "_fields": "id,link,status,title"},
            offset=offset,
            limit=limit,
        )
        items: list[RawContent] = []
        for row in rows:
            try:
                post = WpPost.model_validate(row)
            except ValidationError:
                logger.debug("wp_post_skipped", extra={"category": content_type.name})
                continue
            items.append(
                RawContent(id=post.id, title=post.plain_title, link=post.link, status=post.status)
            )
        return items

    async def query_terms(
        self, taxonomy: ContentType, *, offset: int, limit: int
    ) -> list[RawContent]:
        rows = await self._collect_page(
            f"{REST_PREFIX}/{taxonomy.slug}",
            {"hide_empty": "false", "_fields": "id,link,name"},
            offset=offset,
            limit=limit,
        )
        items: list[RawContent] = []
        for row in rows:
            try:
                term = WpTerm.model_validate(row)
            except ValidationError:
                logger.debug("wp_term_skipped", extra={"category": taxonomy.name})
                continue
            if not term.link:
                continue
            items.append(RawContent(id=term.id, title=term.plain_title, link=term.link))
        return items

    async def site_info(self) -> SiteInfo:
        index = WpSiteIndex.model_validate(self._json(await self._get(REST_ROOT)))
        reading = await self._reading_settings()
        return SiteInfo(
            name=index.name,
            home_url=index.home or index.url or self.site_url,
            show_on_front=reading.show_on_front,
            page_on_front=reading.page_on_front,
        )

    async def _reading_settings(self) -> WpReadingSettings:
        if not self.has_credentials:
            logger.warning("wp_settings_unavailable", extra={"reason": "no_credentials"})
            return WpReadingSettings()

        response = await self._get(f"{REST_PREFIX}/settings", localized=False)
        if response.status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
            logger.warning(
                "wp_settings_unavailable",
                extra={"reason": "forbidden", "status": response.status_code},
            )
            return WpReadingSettings()
        return WpReadingSettings.model_validate(self._json(response))

    async def active_locales(self) -> list[Locale]:
        """Configured locales with their home URLs, resolved once per store."""
        if self._locales is not None:
            return list(self._locales)

        locales: list[Locale] = []
        for code in self.locale_codes:
            response = await self._get(REST_ROOT, {LOCALE_PARAM: code}, localized=False)
            index = WpSiteIndex.model_validate(self._json(response))
            locales.append(Locale(code=code, home_url=index.home or self.site_url))
        self._locales = locales
        return list(locales)

    def current_locale(self) -> str | None:
        return self._locale

    def switch_locale(self, code: str | None) -> None:
        self._locale = code or None


def _error_code(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return ""
    return str(data.get("code") or "") if isinstance(data, dict) else ""
