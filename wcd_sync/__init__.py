"""Content inventory synchronization between a WordPress site and WebChangeDetector."""

__version__ = "4.0.0"
