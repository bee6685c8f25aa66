"""Per-locale enumeration for multilingual sites."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from wcd_sync.adapters.webchangedetector.sync.protocols import LocaleProvider

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Iterator

    from wcd_sync.adapters.webchangedetector.sync.records import Locale, RawContent

logger = logging.getLogger(__name__)


def dedupe_by_id(items: Iterable[RawContent]) -> list[RawContent]:
    """Drop repeated content ids; the first occurrence wins."""
    seen: set[int | str] = set()
    unique: list[RawContent] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


@contextmanager
def switched_locale(provider: LocaleProvider, code: str) -> Iterator[None]:
    """Switch the active locale and always switch back."""
    previous = provider.current_locale()
    provider.switch_locale(code)
    try:
        yield
    finally:
        provider.switch_locale(previous)


class LocaleMerger:
    """Repeats an enumeration once per active locale and merges the results."""

    def __init__(self, store: object) -> None:
        self._provider = store if isinstance(store, LocaleProvider) else None

    @property
    def multilingual(self) -> bool:
        return self._provider is not None

    async def locales(self) -> list[Locale]:
        if self._provider is None:
            return []
        return await self._provider.active_locales()

    async def merge_locales(
        self,
        enumerate_fn: Callable[[], Awaitable[list[RawContent]]],
        category: str = "",
    ) -> list[RawContent]:
        locales = await self.locales()
        if self._provider is None or not locales:
            return dedupe_by_id(await enumerate_fn())

        merged: list[RawContent] = []
        for locale in locales:
            with switched_locale(self._provider, locale.code):
                merged.extend(await enumerate_fn())

        unique = dedupe_by_id(merged)
        logger.debug(
            "locale_merge_complete",
            extra={
                "category": category,
                "locales": [locale.code for locale in locales],
                "merged": len(merged),
                "unique": len(unique),
            },
        )
        return unique
