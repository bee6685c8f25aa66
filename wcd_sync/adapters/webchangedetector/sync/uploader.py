"""Upload of inventory chunks and the single commit per collection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wcd_sync.adapters.webchangedetector.models import (
    ApiResult,
    ApiResultKind,
    UploadFailure,
    UploadResult,
)
from wcd_sync.adapters.webchangedetector.sync.errors import (
    CollectionAlreadyCommittedError,
    record_error,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from wcd_sync.adapters.webchangedetector.sync.normalizer import InventoryBatch
    from wcd_sync.adapters.webchangedetector.sync.protocols import (
        WebChangeDetectorClientProtocol,
    )

logger = logging.getLogger(__name__)


def _sub_request_failed(result: ApiResult) -> bool:
    if not result.ok:
        return True
    return result.status_code is not None and result.status_code >= 400


class BatchUploader:
    """Sends chunks through one fan-out call, then commits the collection once.

    An uploader serves a single sync run; create a new one per run.
    """

    def __init__(self) -> None:
        self._committed: set[str] = set()

    async def upload(
        self,
        client: WebChangeDetectorClientProtocol,
        collection_id: str,
        chunks: Sequence[InventoryBatch],
        *,
        correlation_id: str | None = None,
    ) -> UploadResult:
        result = UploadResult(collection_id=collection_id, batches_total=len(chunks))
        if not chunks:
            return result
        if collection_id in self._committed:
            raise CollectionAlreadyCommittedError(collection_id)

        wire_chunks = [
            {key: [item.to_wire() for item in items] for key, items in chunk.items()}
            for chunk in chunks
        ]
        responses = await client.sync_urls(collection_id, wire_chunks)

        for index, (chunk, response) in enumerate(zip(chunks, responses, strict=True)):
            if _sub_request_failed(response):
                result.batches_failed += 1
                result.failures.append(
                    UploadFailure(
                        batch_index=index,
                        kind=response.kind,
                        status_code=response.status_code,
                        error=response.error,
                    )
                )
                record_error(result, f"batch {index} failed: {response.kind.value}")
                logger.warning(
                    "wcd_upload_batch_failed",
                    extra={
                        "correlation_id": correlation_id,
                        "collection_id": collection_id,
                        "batch_index": index,
                        "result_kind": response.kind.value,
                        "status_code": response.status_code,
                    },
                )
                continue
            result.batches_succeeded += 1
            result.items_uploaded += sum(len(items) for items in chunk.values())

        logger.info(
            "wcd_upload_complete",
            extra={
                "correlation_id": correlation_id,
                "collection_id": collection_id,
                "batches_total": result.batches_total,
                "batches_failed": result.batches_failed,
                "items_uploaded": result.items_uploaded,
            },
        )
        return result

    async def commit(
        self,
        client: WebChangeDetectorClientProtocol,
        collection_id: str,
        *,
        delete_missing_urls: bool,
        correlation_id: str | None = None,
    ) -> ApiResult:
        """Issue ``start-sync`` for a collection; a collection commits at most once."""
        if collection_id in self._committed:
            raise CollectionAlreadyCommittedError(collection_id)
        self._committed.add(collection_id)

        response = await client.start_sync(
            collection_id, delete_missing_urls=delete_missing_urls
        )
        log = logger.info if response.kind is ApiResultKind.PAYLOAD else logger.warning
        log(
            "wcd_collection_committed",
            extra={
                "correlation_id": correlation_id,
                "collection_id": collection_id,
                "delete_missing_urls": delete_missing_urls,
                "result_kind": response.kind.value,
                "status_code": response.status_code,
            },
        )
        return response
