from __future__ import annotations

from .integrations import DEFAULT_WCD_API_URL, WebChangeDetectorConfig, WordPressConfig
from .settings import AppConfig, InventorySyncConfig, RuntimeConfig, Settings, load_config

__all__ = [
    "DEFAULT_WCD_API_URL",
    "AppConfig",
    "InventorySyncConfig",
    "RuntimeConfig",
    "Settings",
    "WebChangeDetectorConfig",
    "WordPressConfig",
    "load_config",
]
