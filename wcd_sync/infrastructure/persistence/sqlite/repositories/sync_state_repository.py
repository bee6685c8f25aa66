"""SQLite implementation of the persisted sync timestamps."""

from __future__ import annotations

from datetime import datetime

from wcd_sync.core.time_utils import ensure_aware, to_naive_utc, utc_now
from wcd_sync.db.models import SyncOption
from wcd_sync.infrastructure.persistence.sqlite.base import SqliteBaseRepository


class SqliteSyncStateRepositoryAdapter(SqliteBaseRepository):
    """Named timestamps stored as ISO-8601 text in ``sync_option``."""

    async def async_get_timestamp(self, name: str) -> datetime | None:
        def _query() -> str | None:
            option = SyncOption.get_or_none(SyncOption.name == name)
            return option.value if option is not None else None

        raw = await self._read(_query, operation_name="get_sync_timestamp")
        if not raw:
            return None
        try:
            return ensure_aware(datetime.fromisoformat(raw))
        except ValueError:
            # Unparseable legacy values behave like "never synced".
            return None

    async def async_set_timestamp(self, name: str, value: datetime) -> None:
        stored = ensure_aware(value).isoformat()

        def _upsert() -> None:
            now = to_naive_utc(utc_now())
            (
                SyncOption.insert(name=name, value=stored)
                .on_conflict(
                    conflict_target=[SyncOption.name],
                    update={SyncOption.value: stored, SyncOption.updated_at: now},
                )
                .execute()
            )

        await self._execute(_upsert, operation_name="set_sync_timestamp")
