"""Public inventory sync service composed of small collaborators."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING

from wcd_sync.adapters.webchangedetector.models import (
    ApiResultKind,
    InventoryItem,
    SyncOutcome,
    SyncStatus,
)
from wcd_sync.adapters.webchangedetector.sync.constants import ONLY_FRONTPAGE_ALLOWANCE
from wcd_sync.adapters.webchangedetector.sync.errors import (
    ContentStoreError,
    RemoteApiError,
    WebsiteNotFoundError,
    record_error,
)
from wcd_sync.adapters.webchangedetector.sync.frontpage import FrontpageResolver, frontpage_item
from wcd_sync.adapters.webchangedetector.sync.locales import LocaleMerger
from wcd_sync.adapters.webchangedetector.sync.normalizer import group_by_category, normalize
from wcd_sync.adapters.webchangedetector.sync.source import ContentSourceAdapter, page_size_for
from wcd_sync.adapters.webchangedetector.sync.uploader import BatchUploader
from wcd_sync.core.logging_utils import generate_correlation_id
from wcd_sync.core.time_utils import COMPLETED_SYNC_FORMAT, utc_now
from wcd_sync.core.url_utils import domain_from_site_url

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from wcd_sync.adapters.webchangedetector.models import ApiResult, SyncUrlType, UploadResult
    from wcd_sync.adapters.webchangedetector.sync.normalizer import InventoryBatch
    from wcd_sync.adapters.webchangedetector.sync.protocols import (
        ContentStore,
        WebChangeDetectorClientFactory,
        WebChangeDetectorClientProtocol,
        WebsiteConfigStore,
    )
    from wcd_sync.adapters.webchangedetector.sync.records import ContentType, RawContent
    from wcd_sync.services.rate_gate import RateGate

    ProgressCallback = Callable[[int, int], Awaitable[None]]

logger = logging.getLogger(__name__)


class InventorySyncService:
    """Builds the site's URL inventory and pushes it to WebChangeDetector.

    This is a thin orchestrator: enumeration, locale handling, the frontpage
    entry and uploading each live in their own collaborator.
    """

    def __init__(
        self,
        *,
        content_store: ContentStore,
        website_store: WebsiteConfigStore,
        client_factory: WebChangeDetectorClientFactory,
        rate_gate: RateGate | None = None,
    ) -> None:
        self._store = content_store
        self._website_store = website_store
        self._client_factory = client_factory
        self._rate_gate = rate_gate

        self._source = ContentSourceAdapter(content_store)
        self._locales = LocaleMerger(content_store)
        self._frontpage = FrontpageResolver(content_store, self._locales, website_store)
        # One full sync at a time per service; overlapping runs would each
        # commit with delete_missing_urls on a partial inventory.
        self._run_lock = asyncio.Lock()

    def _require_rate_gate(self) -> RateGate:
        if not self._rate_gate:
            raise RuntimeError("Rate gate not configured for sync service")
        return self._rate_gate

    async def sync_posts(
        self,
        force: bool = False,
        *,
        progress: ProgressCallback | None = None,
        correlation_id: str | None = None,
    ) -> SyncOutcome:
        """Run a full inventory sync unless the rate gate says it ran recently."""
        correlation_id = correlation_id or generate_correlation_id()
        async with self._run_lock:
            return await self._sync_posts(force, progress, correlation_id)

    async def _sync_posts(
        self, force: bool, progress: ProgressCallback | None, correlation_id: str
    ) -> SyncOutcome:
        decision = await self._require_rate_gate().request(force=force)
        if not decision.permitted:
            return SyncOutcome(status=SyncStatus.RATE_GATED, message=decision.message)

        start_time = time.time()
        chunks: list[InventoryBatch] = []
        logger.info(
            "inventory_sync_started", extra={"correlation_id": correlation_id, "force": force}
        )

        outcome: SyncOutcome
        try:
            async with self._client_factory() as client:
                details = await self._website_store.get_website_details(
                    client, force_refresh=True
                )

                if details.is_allowed(ONLY_FRONTPAGE_ALLOWANCE):
                    site = await self._store.site_info()
                    home = frontpage_item(domain_from_site_url(site.home_url), site.name)
                    chunks.append(group_by_category([home]))
                else:
                    chunks = await self._collect_inventory(
                        details.sync_url_types, correlation_id
                    )
                    _, frontpage_items = await self._frontpage.resolve_frontpage(
                        client, details, correlation_id=correlation_id
                    )
                    if frontpage_items:
                        chunks.append(group_by_category(frontpage_items))

                if not chunks:
                    logger.info("inventory_sync_empty", extra={"correlation_id": correlation_id})
                    return SyncOutcome(status=SyncStatus.SKIPPED_EMPTY, finished_at=utc_now())

                outcome = await self._upload_and_commit(
                    client,
                    chunks,
                    delete_missing_urls=True,
                    progress=progress,
                    correlation_id=correlation_id,
                )
        except (ContentStoreError, RemoteApiError, WebsiteNotFoundError) as exc:
            outcome = SyncOutcome(status=SyncStatus.FAILED, finished_at=utc_now())
            if isinstance(exc, RemoteApiError):
                outcome.error_kind = exc.result.kind
            record_error(outcome, str(exc))
            logger.warning(
                "inventory_sync_config_failed",
                extra={"correlation_id": correlation_id, "error": str(exc)},
            )

        logger.info(
            "inventory_sync_finished",
            extra={
                "correlation_id": correlation_id,
                "status": outcome.status.value,
                "collection_id": outcome.collection_id,
                "items_uploaded": outcome.items_uploaded,
                "batches_failed": outcome.batches_failed,
                "duration_ms": int((time.time() - start_time) * 1000),
            },
        )
        return outcome

    async def sync_single_post(
        self,
        item: InventoryItem,
        *,
        correlation_id: str | None = None,
    ) -> SyncOutcome:
        """Upload one changed item and commit without deleting anything remote."""
        correlation_id = correlation_id or generate_correlation_id()
        async with self._client_factory() as client:
            return await self._upload_and_commit(
                client,
                [group_by_category([item])],
                delete_missing_urls=False,
                correlation_id=correlation_id,
            )

    async def _collect_inventory(
        self, sync_url_types: list[SyncUrlType], correlation_id: str
    ) -> list[InventoryBatch]:
        chunks: list[InventoryBatch] = []
        for category in await self._source.eligible_categories(sync_url_types):
            chunks.extend(await self._collect_category(category, correlation_id))
        return chunks

    async def _collect_category(
        self, category: ContentType, correlation_id: str
    ) -> list[InventoryBatch]:
        chunks: list[InventoryBatch] = []
        limit = page_size_for(category)
        offset = 0
        seen: set[int | str] = set()
        pages = 0

        while True:
            more_flags: list[bool] = []

            async def _page(offset: int = offset) -> list[RawContent]:
                items, has_more = await self._source.enumerate(
                    category, offset, limit, correlation_id=correlation_id
                )
                more_flags.append(has_more)
                return items

            raw_items = await self._locales.merge_locales(_page, category.name)
            fresh = [raw for raw in raw_items if raw.id not in seen]
            seen.update(raw.id for raw in fresh)
            if fresh:
                chunks.append(group_by_category(normalize(raw, category) for raw in fresh))
            pages += 1

            if not any(more_flags):
                break
            offset += limit

        logger.debug(
            "inventory_category_collected",
            extra={
                "correlation_id": correlation_id,
                "category": category.name,
                "pages": pages,
                "items": len(seen),
            },
        )
        return chunks

    async def _upload_and_commit(
        self,
        client: WebChangeDetectorClientProtocol,
        chunks: list[InventoryBatch],
        *,
        delete_missing_urls: bool,
        progress: ProgressCallback | None = None,
        correlation_id: str,
    ) -> SyncOutcome:
        collection_id = str(uuid.uuid4())
        total_items = sum(len(items) for chunk in chunks for items in chunk.values())

        # A fresh uploader per run keeps the commit-once guard scoped to it.
        uploader = BatchUploader()
        upload = await uploader.upload(
            client, collection_id, chunks, correlation_id=correlation_id
        )
        if progress is not None:
            await progress(upload.items_uploaded, total_items)

        outcome = SyncOutcome(
            status=SyncStatus.COMPLETED,
            collection_id=collection_id,
            items_uploaded=upload.items_uploaded,
            batches_uploaded=upload.batches_succeeded,
            batches_failed=upload.batches_failed,
            errors=list(upload.errors),
        )

        if upload.batches_total and upload.batches_succeeded == 0:
            # Committing now with delete_missing_urls would wipe the remote inventory.
            return self._failed(outcome, upload, "all upload batches failed")

        commit = await uploader.commit(
            client,
            collection_id,
            delete_missing_urls=delete_missing_urls,
            correlation_id=correlation_id,
        )
        if not commit.is_success:
            return self._failed(outcome, upload, _describe_failure(commit), commit.kind)

        finished_at = utc_now()
        outcome.finished_at = finished_at
        outcome.message = finished_at.strftime(COMPLETED_SYNC_FORMAT)
        return outcome

    @staticmethod
    def _failed(
        outcome: SyncOutcome,
        upload: UploadResult,
        message: str,
        kind: ApiResultKind | None = None,
    ) -> SyncOutcome:
        outcome.status = SyncStatus.FAILED
        outcome.finished_at = utc_now()
        if kind is None and upload.failures:
            kind = upload.failures[0].kind
        outcome.error_kind = kind
        record_error(outcome, message)
        return outcome


def _describe_failure(result: ApiResult) -> str:
    if result.kind is ApiResultKind.PAYLOAD:
        return f"start-sync returned HTTP {result.status_code}"
    if result.error:
        return f"start-sync failed: {result.kind.value} ({result.error})"
    return f"start-sync failed: {result.kind.value}"
