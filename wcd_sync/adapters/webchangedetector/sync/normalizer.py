"""Conversion of raw CMS content into inventory items."""

from __future__ import annotations

from typing import TYPE_CHECKING

from wcd_sync.adapters.webchangedetector.models import CATEGORY_SEPARATOR, InventoryItem
from wcd_sync.adapters.webchangedetector.sync.constants import DEFAULT_TYPE_SLUG
from wcd_sync.core.url_utils import strip_scheme

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wcd_sync.adapters.webchangedetector.sync.records import ContentType, RawContent

InventoryBatch = dict[str, list[InventoryItem]]


def category_label(category: ContentType) -> str:
    if category.label:
        return category.label
    return category.name.replace("_", " ").replace("-", " ").capitalize()


def category_key(category: ContentType, type_slug: str = DEFAULT_TYPE_SLUG) -> str:
    return f"{type_slug}{CATEGORY_SEPARATOR}{category_label(category)}"


def normalize(
    raw_item: RawContent, category: ContentType, type_slug: str = DEFAULT_TYPE_SLUG
) -> InventoryItem:
    return InventoryItem(
        url=strip_scheme(raw_item.link),
        title=raw_item.title or "",
        category_key=category_key(category, type_slug),
        content_id=raw_item.id,
    )


def changed_content_item(
    before: RawContent | None,
    after: RawContent,
    category: ContentType,
    type_slug: str = DEFAULT_TYPE_SLUG,
) -> InventoryItem | None:
    """Item for a single saved post, or None when nothing sync-relevant changed.

    Only published content whose title or permalink changed qualifies. The
    previous permalink goes in ``url`` so the remote side can move the entry.
    """
    if not after.is_published:
        return None
    if before is not None and before.title == after.title and before.link == after.link:
        return None

    item = normalize(after, category, type_slug)
    previous_url = strip_scheme(before.link) if before is not None and before.link else item.url
    return item.model_copy(update={"url": previous_url, "new_url": item.url})


def group_by_category(items: Iterable[InventoryItem]) -> InventoryBatch:
    """Group items by category key, keeping first-seen order in each group."""
    batch: InventoryBatch = {}
    for item in items:
        batch.setdefault(item.category_key, []).append(item)
    return batch
