"""Synthetic front page entry handling."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wcd_sync.adapters.webchangedetector.models import (
    CATEGORY_SEPARATOR,
    FRONTPAGE_LABEL,
    FRONTPAGE_SLUG,
    InventoryItem,
    SyncUrlType,
)
from wcd_sync.core.url_utils import strip_scheme

if TYPE_CHECKING:
    from wcd_sync.adapters.webchangedetector.models import WebsiteDetails
    from wcd_sync.adapters.webchangedetector.sync.locales import LocaleMerger
    from wcd_sync.adapters.webchangedetector.sync.protocols import (
        ContentStore,
        WebChangeDetectorClientProtocol,
        WebsiteConfigStore,
    )

logger = logging.getLogger(__name__)

FRONTPAGE_CATEGORY_KEY = f"{FRONTPAGE_SLUG}{CATEGORY_SEPARATOR}{FRONTPAGE_LABEL}"


def has_frontpage_marker(sync_url_types: list[SyncUrlType]) -> bool:
    return any(sync_type.is_frontpage for sync_type in sync_url_types)


def frontpage_item(url: str, site_name: str) -> InventoryItem:
    return InventoryItem(
        url=strip_scheme(url),
        title=site_name,
        category_key=FRONTPAGE_CATEGORY_KEY,
    )


class FrontpageResolver:
    """Keeps the frontpage marker in line with the site's front page setting.

    With a blog listing on the home page the site root is synced as one
    synthetic item per locale; with a static front page the marker is
    dropped because the page itself is already part of the inventory.
    """

    def __init__(
        self,
        store: ContentStore,
        locale_merger: LocaleMerger,
        website_store: WebsiteConfigStore,
    ) -> None:
        self._store = store
        self._locales = locale_merger
        self._website_store = website_store

    async def resolve_frontpage(
        self,
        client: WebChangeDetectorClientProtocol,
        details: WebsiteDetails,
        *,
        correlation_id: str | None = None,
    ) -> tuple[list[SyncUrlType], list[InventoryItem]]:
        current = list(details.sync_url_types)
        marker_present = has_frontpage_marker(current)
        site = await self._store.site_info()

        if site.has_static_front_page:
            if not marker_present:
                return current, []
            updated = [sync_type for sync_type in current if not sync_type.is_frontpage]
            await self._website_store.save_sync_url_types(client, details, updated)
            logger.info(
                "frontpage_marker_removed",
                extra={"correlation_id": correlation_id, "website_id": details.id},
            )
            return updated, []

        items = await self._frontpage_items(site.name, site.home_url)
        if marker_present:
            return current, items

        updated = [*current, SyncUrlType.frontpage_marker()]
        await self._website_store.save_sync_url_types(client, details, updated)
        logger.info(
            "frontpage_marker_added",
            extra={"correlation_id": correlation_id, "website_id": details.id},
        )
        return updated, items

    async def _frontpage_items(self, site_name: str, home_url: str) -> list[InventoryItem]:
        locales = await self._locales.locales()
        if not locales:
            return [frontpage_item(home_url, site_name)]

        items: list[InventoryItem] = []
        seen_codes: set[str] = set()
        for locale in locales:
            if locale.code in seen_codes or not locale.home_url:
                continue
            seen_codes.add(locale.code)
            items.append(frontpage_item(locale.home_url, site_name))
        return items
