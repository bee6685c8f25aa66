"""Short-lived cache for remote website details."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wcd_sync.adapters.webchangedetector.sync.constants import WEBSITE_DETAILS_TTL
from wcd_sync.core.time_utils import utc_now

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime, timedelta

    from wcd_sync.adapters.webchangedetector.models import WebsiteDetails

logger = logging.getLogger(__name__)


class WebsiteDetailsCache:
    """Holds the last fetched :class:`WebsiteDetails` for a bounded time.

    Owned by the website config store. Full syncs bypass it with
    ``force_refresh`` and refill it with what they fetched.
    """

    def __init__(
        self,
        ttl: timedelta = WEBSITE_DETAILS_TTL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._details: WebsiteDetails | None = None
        self._fetched_at: datetime | None = None

    def get(self) -> WebsiteDetails | None:
        if self._details is None or self._fetched_at is None:
            return None
        if self._clock() - self._fetched_at > self._ttl:
            logger.debug("website_details_cache_expired")
            self.clear()
            return None
        return self._details

    def put(self, details: WebsiteDetails) -> None:
        self._details = details
        self._fetched_at = self._clock()

    def clear(self) -> None:
        self._details = None
        self._fetched_at = None
