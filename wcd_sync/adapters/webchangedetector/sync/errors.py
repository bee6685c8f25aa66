"""Errors and error collection helpers for inventory sync."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wcd_sync.adapters.webchangedetector.models import (
        ApiResult,
        SyncOutcome,
        UploadResult,
    )


class WcdSyncError(Exception):
    """Base exception for sync engine misuse."""


class ContentStoreError(WcdSyncError):
    """The CMS content store could not serve a page."""


class CollectionAlreadyCommittedError(WcdSyncError):
    """``start-sync`` was requested twice for one collection."""


class WebsiteNotFoundError(WcdSyncError):
    """No remote website record matches the configured domain."""


class RemoteApiError(WcdSyncError):
    """A configuration call was answered with a failure kind."""

    def __init__(self, result: ApiResult, endpoint: str) -> None:
        super().__init__(f"{endpoint}: {result.kind.value}")
        self.result = result
        self.endpoint = endpoint


def record_error(result: UploadResult | SyncOutcome, message: str) -> None:
    if message not in result.errors:
        result.errors.append(message)
