"""Protocol definitions (ports) for inventory sync.

The sync orchestration only talks to these Protocols, so the CMS, the remote
API and local persistence can each be swapped or faked independently.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from contextlib import AbstractAsyncContextManager
    from datetime import datetime

    from wcd_sync.adapters.webchangedetector.models import (
        ApiResult,
        SyncUrlType,
        WebsiteDetails,
    )
    from wcd_sync.adapters.webchangedetector.sync.records import (
        ContentType,
        Locale,
        RawContent,
        SiteInfo,
    )
    from wcd_sync.adapters.webchangedetector.sync.work_items import DeferredSyncJob, JobStatus


class ContentStore(Protocol):
    async def list_content_types(self) -> list[ContentType]: ...

    async def list_taxonomies(self) -> list[ContentType]: ...

    async def query_posts(
        self, content_type: ContentType, *, offset: int, limit: int
    ) -> list[RawContent]: ...

    async def query_terms(
        self, taxonomy: ContentType, *, offset: int, limit: int
    ) -> list[RawContent]: ...

    async def site_info(self) -> SiteInfo: ...


@runtime_checkable
class LocaleProvider(Protocol):
    """Optional multilingual capability of a content store."""

    async def active_locales(self) -> list[Locale]: ...

    def current_locale(self) -> str | None: ...

    def switch_locale(self, code: str | None) -> None: ...


class WebChangeDetectorClientProtocol(Protocol):
    async def call(
        self, endpoint: str, method: str = "POST", body: Mapping[str, Any] | None = None
    ) -> ApiResult: ...

    async def get_websites(self) -> ApiResult: ...

    async def update_website(self, website_id: str, data: Mapping[str, Any]) -> ApiResult: ...

    async def sync_urls(
        self,
        collection_id: str,
        chunks: Sequence[Mapping[str, list[dict[str, str]]]],
    ) -> list[ApiResult]: ...

    async def start_sync(self, collection_id: str, *, delete_missing_urls: bool) -> ApiResult: ...


class WebChangeDetectorClientFactory(Protocol):
    def __call__(self) -> AbstractAsyncContextManager[WebChangeDetectorClientProtocol]: ...


class WebsiteConfigStore(Protocol):
    async def get_website_details(
        self, client: WebChangeDetectorClientProtocol, *, force_refresh: bool = False
    ) -> WebsiteDetails: ...

    async def save_sync_url_types(
        self,
        client: WebChangeDetectorClientProtocol,
        details: WebsiteDetails,
        sync_url_types: list[SyncUrlType],
    ) -> WebsiteDetails: ...


class SyncStateStore(Protocol):
    async def async_get_timestamp(self, name: str) -> datetime | None: ...

    async def async_set_timestamp(self, name: str, value: datetime) -> None: ...


class SyncJobStore(Protocol):
    async def async_upsert_job(self, job: DeferredSyncJob) -> DeferredSyncJob: ...

    async def async_get_job(self, task_name: str) -> DeferredSyncJob | None: ...

    async def async_claim_job(self, task_name: str) -> DeferredSyncJob | None: ...

    async def async_list_due(self, now: datetime) -> list[DeferredSyncJob]: ...

    async def async_update_progress(
        self, task_name: str, *, processed_urls: int, total_urls: int
    ) -> None: ...

    async def async_finish_job(
        self, task_name: str, status: JobStatus, error_message: str | None = None
    ) -> None: ...

    async def async_delete_finished_before(self, cutoff: datetime) -> int: ...
