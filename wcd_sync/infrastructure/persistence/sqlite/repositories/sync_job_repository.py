"""SQLite implementation of the deferred sync job store.

One row exists per task name. Re-enqueueing a kind reuses its row: the
payload is replaced and ``scheduled_at`` keeps the earliest pending time,
so bursts of triggers collapse into one run.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from wcd_sync.adapters.webchangedetector.sync.work_items import (
    DeferredSyncJob,
    JobKind,
    JobStatus,
)
from wcd_sync.core.time_utils import ensure_aware, to_naive_utc, utc_now
from wcd_sync.db.models import SyncJob
from wcd_sync.infrastructure.persistence.sqlite.base import SqliteBaseRepository

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger(__name__)

_PENDING = (JobStatus.QUEUED.value, JobStatus.PROCESSING.value)
_FINISHED = (JobStatus.COMPLETED.value, JobStatus.FAILED.value)


def _to_job(row: SyncJob) -> DeferredSyncJob:
    return DeferredSyncJob(
        kind=JobKind(row.kind),
        payload=dict(row.payload or {}),
        scheduled_at=ensure_aware(row.scheduled_at),
        task_name=row.task_name,
        status=JobStatus(row.status),
        total_urls=row.total_urls,
        processed_urls=row.processed_urls,
        error_message=row.error_message,
        created_at=ensure_aware(row.created_at),
        updated_at=ensure_aware(row.updated_at),
    )


class SqliteSyncJobRepositoryAdapter(SqliteBaseRepository):
    """Adapter for SyncJob database operations."""

    async def async_upsert_job(self, job: DeferredSyncJob) -> DeferredSyncJob:
        """Insert or debounce a job and return the stored state.

        A job that is already running is re-queued so the newer trigger is
        not lost; its in-flight run will not overwrite the queued status.
        """
        scheduled_at = to_naive_utc(job.scheduled_at)

        def _upsert() -> DeferredSyncJob:
            now = to_naive_utc(utc_now())
            row = SyncJob.get_or_none(SyncJob.task_name == job.task_name)
            if row is None:
                row = SyncJob.create(
                    task_name=job.task_name,
                    kind=job.kind.value,
                    payload=job.payload,
                    status=JobStatus.QUEUED.value,
                    scheduled_at=scheduled_at,
                    created_at=now,
                )
                return _to_job(row)

            if row.status == JobStatus.QUEUED.value:
                row.scheduled_at = min(row.scheduled_at, scheduled_at)
            else:
                row.scheduled_at = scheduled_at
                row.created_at = now
                row.total_urls = 0
                row.processed_urls = 0
                row.error_message = None
            row.payload = job.payload
            row.kind = job.kind.value
            row.status = JobStatus.QUEUED.value
            row.save()
            return _to_job(row)

        stored: DeferredSyncJob = await self._execute(_upsert, operation_name="upsert_sync_job")
        logger.debug(
            "sync_job_upserted",
            extra={"task_name": stored.task_name, "scheduled_at": stored.scheduled_at.isoformat()},
        )
        return stored

    async def async_get_job(self, task_name: str) -> DeferredSyncJob | None:
        def _query() -> DeferredSyncJob | None:
            row = SyncJob.get_or_none(SyncJob.task_name == task_name)
            return _to_job(row) if row is not None else None

        return await self._read(_query, operation_name="get_sync_job")

    async def async_claim_job(self, task_name: str) -> DeferredSyncJob | None:
        """Move a queued job to processing; None if it is not queued."""

        def _claim() -> DeferredSyncJob | None:
            updated = (
                SyncJob.update(
                    status=JobStatus.PROCESSING.value,
                    updated_at=to_naive_utc(utc_now()),
                )
                .where(
                    (SyncJob.task_name == task_name)
                    & (SyncJob.status == JobStatus.QUEUED.value)
                )
                .execute()
            )
            if not updated:
                return None
            return _to_job(SyncJob.get(SyncJob.task_name == task_name))

        return await self._execute(_claim, operation_name="claim_sync_job")

    async def async_list_due(self, now: datetime) -> list[DeferredSyncJob]:
        cutoff = to_naive_utc(now)

        def _query() -> list[DeferredSyncJob]:
            rows = (
                SyncJob.select()
                .where(
                    (SyncJob.status == JobStatus.QUEUED.value) & (SyncJob.scheduled_at <= cutoff)
                )
                .order_by(SyncJob.scheduled_at, SyncJob.id)
            )
            return [_to_job(row) for row in rows]

        return await self._read(_query, operation_name="list_due_sync_jobs")

    async def async_update_progress(
        self, task_name: str, *, processed_urls: int, total_urls: int
    ) -> None:
        def _update() -> None:
            SyncJob.update(
                processed_urls=processed_urls,
                total_urls=total_urls,
                updated_at=to_naive_utc(utc_now()),
            ).where(
                (SyncJob.task_name == task_name)
                & (SyncJob.status == JobStatus.PROCESSING.value)
            ).execute()

        await self._execute(_update, operation_name="update_sync_job_progress")

    async def async_finish_job(
        self, task_name: str, status: JobStatus, error_message: str | None = None
    ) -> None:
        """Record the final status of a processing job.

        Jobs re-queued while they ran keep their queued status.
        """
        if status.value not in _FINISHED:
            msg = f"Not a terminal job status: {status.value}"
            raise ValueError(msg)

        def _finish() -> int:
            values: dict[Any, Any] = {
                SyncJob.status: status.value,
                SyncJob.error_message: error_message,
                SyncJob.updated_at: to_naive_utc(utc_now()),
            }
            return (
                SyncJob.update(values)
                .where(
                    (SyncJob.task_name == task_name)
                    & (SyncJob.status == JobStatus.PROCESSING.value)
                )
                .execute()
            )

        updated = await self._execute(_finish, operation_name="finish_sync_job")
        if not updated:
            logger.info(
                "sync_job_finish_skipped",
                extra={"task_name": task_name, "status": status.value},
            )

    async def async_delete_finished_before(self, cutoff: datetime) -> int:
        """Delete completed or failed jobs last touched before ``cutoff``."""
        naive_cutoff = to_naive_utc(cutoff)

        def _delete() -> int:
            return (
                SyncJob.delete()
                .where(SyncJob.status.in_(_FINISHED) & (SyncJob.updated_at < naive_cutoff))
                .execute()
            )

        return await self._execute(_delete, operation_name="delete_finished_sync_jobs")

    async def async_count_pending(self) -> int:
        def _count() -> int:
            return SyncJob.select().where(SyncJob.status.in_(_PENDING)).count()

        return await self._read(_count, operation_name="count_pending_sync_jobs")
