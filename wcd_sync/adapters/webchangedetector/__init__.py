"""WebChangeDetector integration adapter for URL inventory synchronization."""

from wcd_sync.adapters.webchangedetector.client import WebChangeDetectorClient
from wcd_sync.adapters.webchangedetector.sync.service import InventorySyncService

__all__ = ["InventorySyncService", "WebChangeDetectorClient"]
