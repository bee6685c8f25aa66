"""Adapters for external systems: WordPress content and the WebChangeDetector API."""
