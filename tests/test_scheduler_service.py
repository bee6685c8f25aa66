"""Scheduler wiring: save hooks, manual triggers and job handlers."""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace
from typing import Any

import pytest
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from tests.conftest import POSTS, FrozenClock
from wcd_sync.adapters.webchangedetector.models import InventoryItem, SyncOutcome, SyncStatus
from wcd_sync.adapters.webchangedetector.sync.records import RawContent
from wcd_sync.adapters.webchangedetector.sync.work_items import JobKind, JobStatus
from wcd_sync.db.session import DatabaseSessionManager
from wcd_sync.infrastructure.persistence.sqlite.repositories.sync_job_repository import (
    SqliteSyncJobRepositoryAdapter,
)
from wcd_sync.services.deferred_queue import DeferredSyncQueue
from wcd_sync.services.runtime import SyncRuntime
from wcd_sync.services.scheduler import (
    CLEANUP_JOB_ID,
    DAILY_SYNC_JOB_ID,
    DRAIN_JOB_ID,
    SchedulerService,
)


class RecordingSyncService:
    def __init__(self) -> None:
        self.full_runs: list[dict[str, Any]] = []
        self.single_items: list[InventoryItem] = []

    async def sync_posts(self, *, force: bool, progress=None, correlation_id=None) -> SyncOutcome:
        self.full_runs.append({"force": force, "correlation_id": correlation_id})
        if progress is not None:
            await progress(3, 4)
        return SyncOutcome(status=SyncStatus.COMPLETED)

    async def sync_single_post(self, item: InventoryItem) -> SyncOutcome:
        self.single_items.append(item)
        return SyncOutcome(status=SyncStatus.COMPLETED)


class ContextStore:
    def __init__(self) -> None:
        self.entered = 0

    async def __aenter__(self) -> ContextStore:
        self.entered += 1
        return self

    async def __aexit__(self, *args: object) -> None:
        return None


@pytest.fixture
def service(db_path: str):
    session = DatabaseSessionManager(db_path)
    session.migrate()
    cfg = SimpleNamespace(
        sync=SimpleNamespace(daily_enabled=True, daily_interval_hours=24, job_retention_hours=24)
    )
    runtime = SyncRuntime(
        cfg=cfg,
        content_store=ContextStore(),
        website_store=None,
        rate_gate=None,
        sync_service=RecordingSyncService(),
        queue=DeferredSyncQueue(SqliteSyncJobRepositoryAdapter(session), clock=FrozenClock()),
    )
    yield SchedulerService(runtime)
    session.close()


@pytest.mark.asyncio
async def test_unchanged_save_is_ignored(service) -> None:
    post = RawContent(id=1, title="Hello", link="https://example.com/hello/")

    assert await service.on_content_saved(post, post, POSTS) is None
    assert await service.queue.store.async_count_pending() == 0


@pytest.mark.asyncio
async def test_draft_save_is_ignored(service) -> None:
    draft = RawContent(id=1, title="Hello", link="https://example.com/?p=1", status="draft")

    assert await service.on_content_saved(None, draft, POSTS) is None


@pytest.mark.asyncio
async def test_changed_permalink_runs_single_post_sync(service) -> None:
    before = RawContent(id=1, title="Hello", link="https://example.com/hello/")
    after = RawContent(id=1, title="Hello again", link="https://example.com/hello-again/")

    job = await service.on_content_saved(before, after, POSTS)
    assert job is not None
    assert job.kind is JobKind.SINGLE_POST

    status = await service.queue.run_task(job.task_name)

    assert status is JobStatus.COMPLETED
    [item] = service.runtime.sync_service.single_items
    assert item.url == "example.com/hello/"
    assert item.new_url == "example.com/hello-again/"
    assert item.title == "Hello again"


@pytest.mark.asyncio
async def test_manual_full_sync_runs_inside_content_store(service) -> None:
    job = await service.trigger_full_sync(force=True)
    assert job.payload == {"force": True}

    status = await service.queue.run_task(job.task_name)

    assert status is JobStatus.COMPLETED
    [run] = service.runtime.sync_service.full_runs
    assert run["force"] is True
    assert run["correlation_id"].startswith("scheduled_")
    assert service.runtime.content_store.entered == 1
    stored = await service.queue.store.async_get_job(job.task_name)
    assert (stored.processed_urls, stored.total_urls) == (3, 4)


@pytest.mark.asyncio
async def test_daily_trigger_forces_full_sync(service) -> None:
    await service._enqueue_daily_sync()

    job = await service.queue.store.async_get_job("wcd_async_full")
    assert job.payload == {"force": True}


def test_not_running_before_start(service) -> None:
    assert not service.is_running
    assert service.get_next_run_time() is None


@pytest.mark.asyncio
async def test_start_registers_jobs_and_deferred_triggers(service) -> None:
    await service.start()
    try:
        assert service.is_running
        assert service.get_next_run_time() is not None

        intervals = {
            job_id: service._scheduler.get_job(job_id).trigger
            for job_id in (DAILY_SYNC_JOB_ID, CLEANUP_JOB_ID, DRAIN_JOB_ID)
        }
        assert all(isinstance(trigger, IntervalTrigger) for trigger in intervals.values())
        assert intervals[DAILY_SYNC_JOB_ID].interval == timedelta(hours=24)
        assert intervals[CLEANUP_JOB_ID].interval == timedelta(hours=1)
        assert intervals[DRAIN_JOB_ID].interval == timedelta(minutes=1)

        job = await service.queue.enqueue(JobKind.FULL, delay=timedelta(days=365))
        deferred = service._scheduler.get_job(job.task_name)
        assert isinstance(deferred.trigger, DateTrigger)
        assert deferred.args == (job.task_name,)
    finally:
        await service.stop()

    assert not service.is_running
    assert service.get_next_run_time() is None
