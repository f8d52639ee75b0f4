"""URL validation and resolution against a base document URL."""

from __future__ import annotations

import posixpath
import re
from typing import Optional
from urllib.parse import urlsplit

ABSOLUTE_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_ALLOWED_SCHEMES = {"http", "https"}


def _origin(scheme: str, host: str, port: Optional[int]) -> str:
    if ":" in host:
        host = f"[{host}]"
    suffix = f":{port}" if port is not None else ""
    return f"{scheme}://{host}{suffix}"


def resolve_url(reference: Optional[str], base_url: str) -> Optional[str]:
    """Turn a possibly relative reference into an absolute URL.

    Returns ``None`` when the reference is empty or the base cannot be parsed.
    Already absolute http(s) references are returned untouched.
    """
    if not reference:
        return None
    if ABSOLUTE_URL_PATTERN.match(reference):
        return reference

    try:
        base = urlsplit(base_url or "")
        port = base.port
    except ValueError:
        return None
    if not base.scheme:
        return None

    if reference.startswith("//"):
        return f"{base.scheme}:{reference}"

    if not base.hostname:
        return None
    origin = _origin(base.scheme, base.hostname, port)

    if reference.startswith("/"):
        return origin + reference

    directory = posixpath.dirname(base.path or "/")
    if directory in ("", "/", "."):
        directory = ""
    return f"{origin}{directory}/{reference}"


def is_valid_url(url: Optional[str]) -> bool:
    """Return True for syntactically valid absolute http(s) URLs."""
    if not url or any(ch.isspace() for ch in url):
        return False
    try:
        parsed = urlsplit(url)
        parsed.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    return parsed.scheme.lower() in _ALLOWED_SCHEMES and bool(parsed.hostname)


def filename_from_url(url: str) -> str:
    """Return the final path segment of ``url`` (may be empty)."""
    try:
        path = urlsplit(url).path
    except ValueError:
        return ""
    return posixpath.basename(path)
