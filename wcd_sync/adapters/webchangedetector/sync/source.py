"""Paginated enumeration of CMS content."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wcd_sync.adapters.webchangedetector.sync.constants import CONTENT_PAGE_SIZE, TERM_PAGE_SIZE
from wcd_sync.adapters.webchangedetector.sync.errors import ContentStoreError

if TYPE_CHECKING:
    from wcd_sync.adapters.webchangedetector.models import SyncUrlType
    from wcd_sync.adapters.webchangedetector.sync.protocols import ContentStore
    from wcd_sync.adapters.webchangedetector.sync.records import ContentType, RawContent

logger = logging.getLogger(__name__)


def page_size_for(category: ContentType) -> int:
    return TERM_PAGE_SIZE if category.is_taxonomy else CONTENT_PAGE_SIZE


class ContentSourceAdapter:
    """Reads content pages from a :class:`ContentStore` without ever raising.

    A store failure ends enumeration of that category; the caller keeps
    whatever was read before it.
    """

    def __init__(self, store: ContentStore) -> None:
        self.store = store

    async def enumerate(
        self,
        category: ContentType,
        offset: int,
        limit: int | None = None,
        *,
        correlation_id: str | None = None,
    ) -> tuple[list[RawContent], bool]:
        """Return one page of published items and whether another page may follow."""
        if limit is None:
            limit = page_size_for(category)
        try:
            if category.is_taxonomy:
                page = await self.store.query_terms(category, offset=offset, limit=limit)
            else:
                page = await self.store.query_posts(category, offset=offset, limit=limit)
        except ContentStoreError as exc:
            logger.warning(
                "content_source_page_failed",
                extra={
                    "correlation_id": correlation_id,
                    "category": category.name,
                    "offset": offset,
                    "error": str(exc),
                },
            )
            return [], False

        has_more = len(page) >= limit
        published = [item for item in page if item.is_published]
        logger.debug(
            "content_source_page_read",
            extra={
                "correlation_id": correlation_id,
                "category": category.name,
                "offset": offset,
                "returned": len(page),
                "published": len(published),
            },
        )
        return published, has_more

    async def eligible_categories(self, sync_url_types: list[SyncUrlType]) -> list[ContentType]:
        """Public post types and taxonomies whose slug is enabled for sync.

        Post types come first, then taxonomies, each in store order.
        """
        enabled = {sync_type.content_type_slug for sync_type in sync_url_types}
        if not enabled:
            return []

        categories: list[ContentType] = []
        try:
            content_types = await self.store.list_content_types()
            taxonomies = await self.store.list_taxonomies()
        except ContentStoreError as exc:
            logger.warning("content_source_types_failed", extra={"error": str(exc)})
            return []

        for category in (*content_types, *taxonomies):
            if category.public and category.slug in enabled:
                categories.append(category)
        return categories
