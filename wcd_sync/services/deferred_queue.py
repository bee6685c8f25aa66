"""Debounced, persisted queue for syncs that run shortly after a trigger."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from apscheduler.triggers.date import DateTrigger

from wcd_sync.adapters.webchangedetector.models import SyncStatus
from wcd_sync.adapters.webchangedetector.sync.constants import (
    DEFAULT_DEFER_DELAY,
    DEFAULT_JOB_RETENTION,
)
from wcd_sync.adapters.webchangedetector.sync.work_items import (
    DeferredSyncJob,
    JobKind,
    JobStatus,
)
from wcd_sync.core.time_utils import utc_now

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime, timedelta

    from apscheduler.schedulers.base import BaseScheduler

    from wcd_sync.adapters.webchangedetector.models import SyncOutcome
    from wcd_sync.adapters.webchangedetector.sync.protocols import SyncJobStore

    JobHandler = Callable[[DeferredSyncJob], Awaitable[SyncOutcome | None]]

logger = logging.getLogger(__name__)


class DeferredSyncQueue:
    """Stores deferred jobs and runs them through registered handlers.

    Enqueueing the same kind again before it ran replaces the payload while
    the run time stays anchored on the first trigger. With a scheduler
    attached each job also gets an apscheduler ``DateTrigger`` keyed by its
    task name; without one, callers drain due jobs with :meth:`run_due`.
    """

    def __init__(
        self,
        store: SyncJobStore,
        *,
        scheduler: BaseScheduler | None = None,
        default_delay: timedelta = DEFAULT_DEFER_DELAY,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.default_delay = default_delay
        self._scheduler = scheduler
        self._clock = clock
        self._handlers: dict[JobKind, JobHandler] = {}
        self._running: set[str] = set()

    def attach_scheduler(self, scheduler: BaseScheduler | None) -> None:
        self._scheduler = scheduler

    def register(self, kind: JobKind, handler: JobHandler) -> None:
        self._handlers[kind] = handler

    async def enqueue(
        self,
        kind: JobKind,
        payload: dict[str, Any] | None = None,
        delay: timedelta | None = None,
    ) -> DeferredSyncJob:
        scheduled_at = self._clock() + (self.default_delay if delay is None else delay)
        job = DeferredSyncJob(kind=kind, payload=dict(payload or {}), scheduled_at=scheduled_at)
        stored = await self.store.async_upsert_job(job)
        self._schedule(stored)
        logger.info(
            "deferred_sync_enqueued",
            extra={
                "task_name": stored.task_name,
                "kind": kind.value,
                "scheduled_at": stored.scheduled_at.isoformat(),
            },
        )
        return stored

    def _schedule(self, job: DeferredSyncJob) -> None:
        if self._scheduler is None:
            return
        self._scheduler.add_job(
            self.run_task,
            trigger=DateTrigger(run_date=job.scheduled_at),
            args=[job.task_name],
            id=job.task_name,
            name=f"Deferred {job.kind.value} sync",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=None,
            coalesce=True,
        )

    def progress_reporter(self, task_name: str) -> Callable[[int, int], Awaitable[None]]:
        """Callback that stores upload progress on the job row."""

        async def _report(processed: int, total: int) -> None:
            await self.store.async_update_progress(
                task_name, processed_urls=processed, total_urls=total
            )

        return _report

    async def run_task(self, task_name: str) -> JobStatus | None:
        """Claim and run one job; None when it was not queued or is already running.

        A job re-queued while its previous run is in flight stays queued and is
        picked up by the next :meth:`run_due` after that run finished.
        """
        if task_name in self._running:
            logger.info("deferred_sync_busy", extra={"task_name": task_name})
            return None

        self._running.add(task_name)
        try:
            return await self._claim_and_run(task_name)
        finally:
            self._running.discard(task_name)

    async def _claim_and_run(self, task_name: str) -> JobStatus | None:
        job = await self.store.async_claim_job(task_name)
        if job is None:
            logger.debug("deferred_sync_not_claimed", extra={"task_name": task_name})
            return None

        handler = self._handlers.get(job.kind)
        if handler is None:
            message = f"No handler registered for {job.kind.value}"
            logger.error("deferred_sync_no_handler", extra={"task_name": task_name})
            await self.store.async_finish_job(task_name, JobStatus.FAILED, message)
            return JobStatus.FAILED

        logger.info("deferred_sync_started", extra={"task_name": task_name})
        try:
            outcome = await handler(job)
        except Exception as exc:
            logger.exception(
                "deferred_sync_failed",
                extra={"task_name": task_name, "error": str(exc)},
            )
            await self.store.async_finish_job(task_name, JobStatus.FAILED, str(exc))
            return JobStatus.FAILED

        if outcome is not None and outcome.status is SyncStatus.FAILED:
            message = "; ".join(outcome.errors) or outcome.message or "sync failed"
            await self.store.async_finish_job(task_name, JobStatus.FAILED, message)
            logger.warning(
                "deferred_sync_outcome_failed",
                extra={"task_name": task_name, "error": message},
            )
            return JobStatus.FAILED

        await self.store.async_finish_job(task_name, JobStatus.COMPLETED)
        logger.info(
            "deferred_sync_completed",
            extra={
                "task_name": task_name,
                "status": outcome.status.value if outcome is not None else None,
            },
        )
        return JobStatus.COMPLETED

    async def run_due(self, now: datetime | None = None) -> dict[str, JobStatus | None]:
        """Run every job due at ``now`` in scheduled order."""
        results: dict[str, JobStatus | None] = {}
        for job in await self.store.async_list_due(now or self._clock()):
            results[job.task_name] = await self.run_task(job.task_name)
        return results

    async def cleanup(self, older_than: timedelta = DEFAULT_JOB_RETENTION) -> int:
        """Delete finished jobs not touched for ``older_than``."""
        removed = await self.store.async_delete_finished_before(self._clock() - older_than)
        if removed:
            logger.info("deferred_sync_cleanup", extra={"removed": removed})
        return removed
