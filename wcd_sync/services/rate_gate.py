"""Minimum-interval guard in front of full syncs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wcd_sync.adapters.webchangedetector.sync.constants import (
    DEFAULT_RATE_INTERVAL,
    RATE_GATE_OPTION,
)
from wcd_sync.core.time_utils import LAST_SYNC_FORMAT, ensure_aware, utc_now

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime, timedelta

    from wcd_sync.adapters.webchangedetector.sync.protocols import SyncStateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateDecision:
    permitted: bool
    last_sync_at: datetime | None = None
    checked_at: datetime | None = None

    @property
    def message(self) -> str:
        """Human readable time of the previous sync, empty if there was none."""
        if self.last_sync_at is None:
            return ""
        return self.last_sync_at.strftime(LAST_SYNC_FORMAT)


class RateGate:
    """Lets a sync through at most once per interval unless forced.

    The timestamp is persisted before the sync starts. Check and write
    happen under one lock so triggers inside this process cannot both pass;
    separate processes sharing the store can still race.
    """

    def __init__(
        self,
        store: SyncStateStore,
        interval: timedelta = DEFAULT_RATE_INTERVAL,
        *,
        option_name: str = RATE_GATE_OPTION,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self.interval = interval
        self.option_name = option_name
        self._clock = clock
        self._lock = asyncio.Lock()

    async def last_sync_at(self) -> datetime | None:
        value = await self._store.async_get_timestamp(self.option_name)
        return ensure_aware(value) if value is not None else None

    async def request(self, force: bool = False, now: datetime | None = None) -> GateDecision:
        async with self._lock:
            checked_at = now or self._clock()
            last = await self.last_sync_at()

            if last is not None and not force and checked_at - last <= self.interval:
                logger.info(
                    "sync_rate_gated",
                    extra={
                        "last_sync_at": last.isoformat(),
                        "interval_seconds": self.interval.total_seconds(),
                    },
                )
                return GateDecision(permitted=False, last_sync_at=last, checked_at=checked_at)

            await self._store.async_set_timestamp(self.option_name, checked_at)
            return GateDecision(permitted=True, last_sync_at=last, checked_at=checked_at)
