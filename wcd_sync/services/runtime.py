"""Construction of the sync engine from application configuration."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from wcd_sync.adapters.webchangedetector.client import WebChangeDetectorClient
from wcd_sync.adapters.webchangedetector.sync.service import InventorySyncService
from wcd_sync.adapters.webchangedetector.website import ApiWebsiteConfigStore
from wcd_sync.adapters.wordpress.client import WordPressRestStore
from wcd_sync.infrastructure.persistence.sqlite.repositories.sync_job_repository import (
    SqliteSyncJobRepositoryAdapter,
)
from wcd_sync.infrastructure.persistence.sqlite.repositories.sync_state_repository import (
    SqliteSyncStateRepositoryAdapter,
)
from wcd_sync.services.deferred_queue import DeferredSyncQueue
from wcd_sync.services.rate_gate import RateGate

if TYPE_CHECKING:
    from wcd_sync.config import AppConfig
    from wcd_sync.db.session import DatabaseSessionManager


@dataclass
class SyncRuntime:
    """Everything a process needs to run inventory syncs."""

    cfg: AppConfig
    content_store: WordPressRestStore
    website_store: ApiWebsiteConfigStore
    rate_gate: RateGate
    sync_service: InventorySyncService
    queue: DeferredSyncQueue


def build_wcd_client(cfg: AppConfig) -> WebChangeDetectorClient:
    return WebChangeDetectorClient(
        cfg.wcd.api_token,
        domain=cfg.domain,
        api_url=cfg.wcd.api_url,
        wp_id=cfg.wcd.wp_id,
        plugin_version=cfg.wcd.plugin_version,
        timeout=cfg.wcd.request_timeout_sec,
    )


def build_content_store(cfg: AppConfig) -> WordPressRestStore:
    return WordPressRestStore(
        cfg.wordpress.site_url,
        username=cfg.wordpress.username,
        app_password=cfg.wordpress.app_password,
        timeout=cfg.wordpress.request_timeout_sec,
        locales=cfg.wordpress.locales,
    )


def build_runtime(cfg: AppConfig, db: DatabaseSessionManager) -> SyncRuntime:
    """Wire stores, repositories and services for one process."""
    content_store = build_content_store(cfg)
    website_store = ApiWebsiteConfigStore(cfg.domain)
    rate_gate = RateGate(
        SqliteSyncStateRepositoryAdapter(db),
        timedelta(minutes=cfg.sync.rate_interval_minutes),
    )
    sync_service = InventorySyncService(
        content_store=content_store,
        website_store=website_store,
        client_factory=functools.partial(build_wcd_client, cfg),
        rate_gate=rate_gate,
    )
    queue = DeferredSyncQueue(
        SqliteSyncJobRepositoryAdapter(db),
        default_delay=timedelta(seconds=cfg.sync.defer_delay_seconds),
    )
    return SyncRuntime(
        cfg=cfg,
        content_store=content_store,
        website_store=website_store,
        rate_gate=rate_gate,
        sync_service=sync_service,
        queue=queue,
    )
