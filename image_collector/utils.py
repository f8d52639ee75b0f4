"""Utility helpers for filenames and human-readable sizes."""

from __future__ import annotations

import posixpath
import re
import time
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from .urls import filename_from_url

UNSAFE_FILENAME_PATTERN = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')
_SIZE_UNITS = ("B", "KB", "MB", "GB")


def sanitize_filename(value: str, fallback: str = "image") -> str:
    """Strip characters that are unsafe in a filename or header value."""
    cleaned = UNSAFE_FILENAME_PATTERN.sub("_", value).strip(" .")
    return cleaned or fallback


def content_disposition(filename: str) -> str:
    """Build an ``attachment`` header value that is safe to send as latin-1.

    Non-ASCII names get an ASCII ``filename`` plus the UTF-8 ``filename*`` form.
    """
    name = sanitize_filename(filename)
    stem, suffix = posixpath.splitext(name)
    ascii_stem = stem.encode("ascii", "ignore").decode("ascii").strip(" .")
    ascii_suffix = suffix.encode("ascii", "ignore").decode("ascii")
    ascii_name = f"{ascii_stem or 'image'}{ascii_suffix}"
    if ascii_name == name:
        return f'attachment; filename="{name}"'
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(name, safe='')}"


def derive_filename(url: str, extension: Optional[str] = None) -> str:
    """Pick a download filename from the last URL path segment.

    When the segment carries no extension, a timestamped ``image_<ms>.<ext>``
    name is generated instead, using ``extension`` or ``jpg``.
    """
    name = sanitize_filename(filename_from_url(url), fallback="")
    if name and "." in name:
        return name
    timestamp = int(time.time() * 1000)
    return f"image_{timestamp}.{extension or 'jpg'}"


def unique_path(directory: Path, filename: str) -> Path:
    """Return a path in ``directory`` that does not clobber an existing file."""
    candidate = directory / filename
    if not candidate.exists():
        return candidate
    stem, suffix = candidate.stem, candidate.suffix
    counter = 1
    while True:
        candidate = directory / f"{stem}-{counter}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1


def format_size(size: Optional[int]) -> str:
    if size is None:
        return "unknown size"
    if size == 0:
        return "0 B"
    value = float(size)
    for unit in _SIZE_UNITS:
        if value < 1024 or unit == _SIZE_UNITS[-1]:
            return f"{value:.1f}".rstrip("0").rstrip(".") + f" {unit}"
        value /= 1024
    return f"{size} B"
