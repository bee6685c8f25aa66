"""Peewee ORM models for the local sync database."""

from __future__ import annotations

import datetime as _dt
from typing import Any

import peewee
from playhouse.sqlite_ext import JSONField

from wcd_sync.core.time_utils import to_naive_utc, utc_now

# A proxy that will be initialised with the concrete database instance at runtime.
database_proxy: peewee.Database = peewee.DatabaseProxy()


def _utcnow() -> _dt.datetime:
    """Naive UTC now; aware values are normalised before they are stored."""
    return to_naive_utc(utc_now())


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    def save(self, *args: Any, **kwargs: Any) -> int:
        """Keep updated_at current on every save."""
        if hasattr(self, "updated_at"):
            self.updated_at = _utcnow()
        return super().save(*args, **kwargs)

    class Meta:
        database = database_proxy
        legacy_table_names = False


class SyncOption(BaseModel):
    """Named persisted value, e.g. the time of the last full sync."""

    name = peewee.TextField(unique=True)
    value = peewee.TextField(null=True)
    updated_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "sync_option"


class SyncJob(BaseModel):
    """Deferred sync job; one row per task name."""

    id = peewee.AutoField()
    task_name = peewee.TextField(unique=True)
    kind = peewee.TextField()
    payload = JSONField(default=dict)
    status = peewee.TextField(default="queued", index=True)
    total_urls = peewee.IntegerField(default=0)
    processed_urls = peewee.IntegerField(default=0)
    error_message = peewee.TextField(null=True)
    scheduled_at = peewee.DateTimeField(index=True)
    created_at = peewee.DateTimeField(default=_utcnow)
    updated_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "sync_job"
        indexes = ((("status", "scheduled_at"), False),)


ALL_MODELS: tuple[type[BaseModel], ...] = (
    SyncOption,
    SyncJob,
)
