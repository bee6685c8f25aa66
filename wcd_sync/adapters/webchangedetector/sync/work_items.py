"""Deferred job records used by the sync scheduler."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from wcd_sync.adapters.webchangedetector.sync.constants import TASK_NAME_PREFIX
from wcd_sync.core.time_utils import utc_now


class JobKind(enum.StrEnum):
    SINGLE_POST = "single_post"
    FULL = "full"


class JobStatus(enum.StrEnum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def task_name_for(kind: JobKind) -> str:
    """Stable task name; one pending job per kind."""
    return f"{TASK_NAME_PREFIX}_{kind.value}"


@dataclass
class DeferredSyncJob:
    """A sync scheduled to run after a short delay."""

    kind: JobKind
    payload: dict[str, Any]
    scheduled_at: datetime
    task_name: str = ""
    status: JobStatus = JobStatus.QUEUED
    total_urls: int = 0
    processed_urls: int = 0
    error_message: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.task_name:
            self.task_name = task_name_for(self.kind)

    @property
    def progress(self) -> int:
        """Percentage of URLs processed, 0-100."""
        if self.total_urls <= 0:
            return 100 if self.status is JobStatus.COMPLETED else 0
        return min(100, int(self.processed_urls * 100 / self.total_urls))
