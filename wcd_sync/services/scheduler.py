"""Background scheduler for inventory syncs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from wcd_sync.adapters.webchangedetector.models import InventoryItem
from wcd_sync.adapters.webchangedetector.sync.normalizer import changed_content_item
from wcd_sync.adapters.webchangedetector.sync.work_items import JobKind
from wcd_sync.core.time_utils import UTC

if TYPE_CHECKING:
    from wcd_sync.adapters.webchangedetector.models import SyncOutcome
    from wcd_sync.adapters.webchangedetector.sync.records import ContentType, RawContent
    from wcd_sync.adapters.webchangedetector.sync.work_items import DeferredSyncJob
    from wcd_sync.services.runtime import SyncRuntime

logger = logging.getLogger(__name__)

DAILY_SYNC_JOB_ID = "wcd_daily_sync"
CLEANUP_JOB_ID = "wcd_job_cleanup"
DRAIN_JOB_ID = "wcd_deferred_drain"


class SchedulerService:
    """Runs the daily full sync and the deferred sync queue."""

    def __init__(self, runtime: SyncRuntime) -> None:
        """Initialize scheduler service.

        Args:
            runtime: Wired sync components for this process
        """
        self.runtime = runtime
        self.cfg = runtime.cfg
        self.queue = runtime.queue
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

        self.queue.register(JobKind.FULL, self._run_full_sync)
        self.queue.register(JobKind.SINGLE_POST, self._run_single_post_sync)

    async def start(self) -> None:
        """Start the scheduler with configured jobs."""
        if self._started:
            logger.warning("scheduler_already_started")
            return

        self._scheduler = AsyncIOScheduler(timezone=UTC)
        self.queue.attach_scheduler(self._scheduler)

        if self.cfg.sync.daily_enabled:
            self._scheduler.add_job(
                self._enqueue_daily_sync,
                trigger=IntervalTrigger(hours=self.cfg.sync.daily_interval_hours),
                id=DAILY_SYNC_JOB_ID,
                name="Daily inventory sync",
                replace_existing=True,
                max_instances=1,
            )
            logger.info(
                "scheduler_daily_sync_added",
                extra={
                    "job_id": DAILY_SYNC_JOB_ID,
                    "interval_hours": self.cfg.sync.daily_interval_hours,
                },
            )
        else:
            logger.info("scheduler_daily_sync_skipped", extra={"daily_enabled": False})

        self._scheduler.add_job(
            self._run_cleanup,
            trigger=IntervalTrigger(hours=1),
            id=CLEANUP_JOB_ID,
            name="Deferred sync job cleanup",
            replace_existing=True,
            max_instances=1,
        )
        # Picks up jobs whose date trigger was skipped or lost with a restart.
        self._scheduler.add_job(
            self.queue.run_due,
            trigger=IntervalTrigger(minutes=1),
            id=DRAIN_JOB_ID,
            name="Deferred sync drain",
            replace_existing=True,
            max_instances=1,
        )

        self._scheduler.start()
        self._started = True
        logger.info("scheduler_started")

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self._started:
            self._scheduler.shutdown(wait=False)
            self.queue.attach_scheduler(None)
            self._scheduler = None
            self._started = False
            logger.info("scheduler_stopped")

    async def trigger_full_sync(self, *, force: bool = False) -> DeferredSyncJob:
        """Queue a full sync to run after the defer delay."""
        return await self.queue.enqueue(JobKind.FULL, {"force": force})

    async def on_content_saved(
        self,
        before: RawContent | None,
        after: RawContent,
        category: ContentType,
    ) -> DeferredSyncJob | None:
        """Queue a single-post sync when a save changed title or permalink."""
        item = changed_content_item(before, after, category)
        if item is None:
            logger.debug(
                "content_save_ignored",
                extra={"content_id": after.id, "status": after.status},
            )
            return None
        return await self.queue.enqueue(
            JobKind.SINGLE_POST, {"item": item.model_dump(mode="json")}
        )

    async def _enqueue_daily_sync(self) -> None:
        await self.queue.enqueue(JobKind.FULL, {"force": True})

    async def _run_full_sync(self, job: DeferredSyncJob) -> SyncOutcome:
        correlation_id = f"scheduled_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S')}"
        logger.info("scheduled_inventory_sync_starting", extra={"cid": correlation_id})
        async with self.runtime.content_store:
            return await self.runtime.sync_service.sync_posts(
                force=bool(job.payload.get("force", False)),
                progress=self.queue.progress_reporter(job.task_name),
                correlation_id=correlation_id,
            )

    async def _run_single_post_sync(self, job: DeferredSyncJob) -> SyncOutcome:
        item = InventoryItem.model_validate(job.payload["item"])
        return await self.runtime.sync_service.sync_single_post(item)

    async def _run_cleanup(self) -> None:
        await self.queue.cleanup(timedelta(hours=self.cfg.sync.job_retention_hours))

    def get_next_run_time(self, job_id: str = DAILY_SYNC_JOB_ID) -> datetime | None:
        """Get next scheduled run time for a job.

        Returns:
            Next run time or None if job doesn't exist or scheduler not started
        """
        if not self._scheduler or not self._started:
            return None
        job = self._scheduler.get_job(job_id)
        return job.next_run_time if job else None

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._started and self._scheduler is not None
