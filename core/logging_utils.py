"""
Secret-safe logging utilities.

Pre-signed storage URLs carry their signature in the query string; only
the sanitized form is ever logged.
"""

from urllib.parse import urlsplit, urlunsplit


def sanitize_url(url: str | None) -> str:
    """Strip query string and fragment from a URL."""
    if not url:
        return "N/A"

    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
