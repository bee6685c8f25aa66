"""WordPress REST API content store."""

from wcd_sync.adapters.wordpress.client import WordPressRestStore

__all__ = ["WordPressRestStore"]
