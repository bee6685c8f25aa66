from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


def strip_scheme(url: str | None) -> str:
    """Remove a leading ``http://`` or ``https://`` from ``url``.

    Anything else is passed through untouched, including malformed input.
    """
    if not url:
        return ""
    return _SCHEME_PATTERN.sub("", url.strip(), count=1)


def domain_from_site_url(site_url: str) -> str:
    """Return ``host[/path]`` for a site URL without scheme or trailing slash.

    WordPress installs living in a sub directory keep that directory, the
    remote API identifies websites by it.
    """
    if not site_url:
        return ""
    candidate = site_url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    parsed = urlparse(candidate)
    host = parsed.netloc or ""
    path = parsed.path.rstrip("/")
    return f"{host}{path}".rstrip("/")
