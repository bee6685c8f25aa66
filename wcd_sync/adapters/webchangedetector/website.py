"""Remote website configuration (sync types and allowances)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from wcd_sync.adapters.webchangedetector.models import WebsiteDetails
from wcd_sync.adapters.webchangedetector.sync.cache import WebsiteDetailsCache
from wcd_sync.adapters.webchangedetector.sync.errors import RemoteApiError, WebsiteNotFoundError

if TYPE_CHECKING:
    from wcd_sync.adapters.webchangedetector.models import SyncUrlType
    from wcd_sync.adapters.webchangedetector.sync.protocols import (
        WebChangeDetectorClientProtocol,
    )

logger = logging.getLogger(__name__)


def _website_rows(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, dict):
        rows = payload.get("data", [])
    elif isinstance(payload, list):
        rows = payload
    else:
        rows = []
    return [row for row in rows if isinstance(row, dict)]


def match_website(rows: list[dict[str, Any]], domain: str) -> dict[str, Any] | None:
    """Pick the website whose domain starts with ``domain`` (trailing slashes ignored)."""
    wanted = domain.rstrip("/")
    for row in rows:
        if str(row.get("domain") or "").rstrip("/").startswith(wanted):
            return row
    return None


class ApiWebsiteConfigStore:
    """Reads and writes the website record through the remote API."""

    def __init__(self, domain: str, cache: WebsiteDetailsCache | None = None) -> None:
        self.domain = domain
        self.cache = cache or WebsiteDetailsCache()

    async def get_website_details(
        self,
        client: WebChangeDetectorClientProtocol,
        *,
        force_refresh: bool = False,
    ) -> WebsiteDetails:
        if not force_refresh:
            cached = self.cache.get()
            if cached is not None:
                return cached

        result = await client.get_websites()
        if not result.ok:
            raise RemoteApiError(result, "websites")

        row = match_website(_website_rows(result.payload), self.domain)
        if row is None:
            raise WebsiteNotFoundError(self.domain)

        try:
            details = WebsiteDetails.model_validate(row)
        except ValidationError as exc:
            raise WebsiteNotFoundError(f"{self.domain}: invalid website record") from exc

        self.cache.put(details)
        logger.debug(
            "website_details_loaded",
            extra={"website_id": details.id, "sync_url_types": len(details.sync_url_types)},
        )
        return details

    async def save_sync_url_types(
        self,
        client: WebChangeDetectorClientProtocol,
        details: WebsiteDetails,
        sync_url_types: list[SyncUrlType],
    ) -> WebsiteDetails:
        updated = details.model_copy(update={"sync_url_types": list(sync_url_types)})
        body = updated.model_dump(mode="json", by_alias=True)
        result = await client.update_website(updated.id, body)
        if not result.ok:
            raise RemoteApiError(result, f"websites/{updated.id}")
        self.cache.put(updated)
        return updated
