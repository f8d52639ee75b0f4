"""Pattern-based discovery of image references in raw page markup.

No DOM is built: each scan is a regular expression run over the document
text, so broken or partial markup still yields matches wherever the
attribute syntax is locally well formed.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterator, List, NamedTuple, Optional

from .images import looks_like_image
from .models import ImageCandidate, SourceKind
from .urls import resolve_url

logger = logging.getLogger("image_collector")

IMG_SRC_PATTERN = re.compile(
    r"<img\b[^>]*?\ssrc\s*=\s*[\"']([^\"']+)[\"'][^>]*>", re.IGNORECASE
)
CSS_BACKGROUND_PATTERN = re.compile(
    r"background(?:-image)?\s*:\s*url\([\"']?([^\"')\s]+)[\"']?\)", re.IGNORECASE
)
INLINE_STYLE_PATTERN = re.compile(
    r"style\s*=\s*[\"'][^\"']*background[^\"']*url\([\"']?([^\"')\s]+)[\"']?\)[^\"']*[\"']",
    re.IGNORECASE,
)
TEXT_URL_PATTERN = re.compile(
    r"https?://[^\s\"'<>]+\.(?:jpg|jpeg|png|gif|bmp|webp|svg|ico)(?:\?[^\s\"'<>]*)?",
    re.IGNORECASE,
)
LAZY_SRC_PATTERN = re.compile(
    r"<img\b[^>]*?\sdata-src\s*=\s*[\"']([^\"']+)[\"'][^>]*>", re.IGNORECASE
)

# The alt value runs to the quote that opened it, so "Tom's cat" stays whole.
_ALT_VALUE = r"\salt\s*=\s*(?P<quote>[\"'])(?P<alt>(?:(?!(?P=quote)).)*)(?P=quote)"
_ALT_AFTER_SRC = (
    r"<img\b[^>]*?\ssrc\s*=\s*[\"']\s*{src}\s*[\"'][^>]*?" + _ALT_VALUE + r"[^>]*>"
)
_ALT_BEFORE_SRC = (
    r"<img\b[^>]*?" + _ALT_VALUE + r"[^>]*?\ssrc\s*=\s*[\"']\s*{src}\s*[\"'][^>]*>"
)


class Scan(NamedTuple):
    """One pattern pass over the markup."""

    source: SourceKind
    pattern: re.Pattern[str]
    group: int
    resolve: bool


# Order matters only for tie-breaking when the results are ranked.
SCANS = (
    Scan(SourceKind.IMG_TAG, IMG_SRC_PATTERN, 1, True),
    Scan(SourceKind.CSS_BACKGROUND, CSS_BACKGROUND_PATTERN, 1, True),
    Scan(SourceKind.INLINE_STYLE, INLINE_STYLE_PATTERN, 1, True),
    Scan(SourceKind.TEXT_URL, TEXT_URL_PATTERN, 0, False),
    Scan(SourceKind.LAZY_LOAD, LAZY_SRC_PATTERN, 1, True),
)


def find_alt_text(markup: str, src: str) -> str:
    """Find alt text for the first ``<img>`` whose ``src`` equals ``src``.

    If the same source appears on several tags with different alt text the
    first tag wins.
    """
    escaped = re.escape(src)
    for template in (_ALT_AFTER_SRC, _ALT_BEFORE_SRC):
        match = re.search(template.format(src=escaped), markup, re.IGNORECASE)
        if match:
            return match.group("alt")
    return ""


def _iter_matches(scan: Scan, markup: str) -> Iterator[str]:
    for match in scan.pattern.finditer(markup):
        value = match.group(scan.group).strip()
        if value:
            yield value


def _candidate_url(raw: str, base_url: str, resolve: bool) -> Optional[str]:
    url = resolve_url(raw, base_url) if resolve else raw
    if not url or not looks_like_image(url):
        return None
    return url


def extract_resources(markup: str, base_url: str) -> List[ImageCandidate]:
    """Run every scan over ``markup`` and return image candidates in scan order.

    Duplicates are kept; callers collapse them when ranking.
    """
    candidates: List[ImageCandidate] = []
    if not markup:
        return candidates

    alt_cache: Dict[str, str] = {}
    for scan in SCANS:
        found = 0
        for raw in _iter_matches(scan, markup):
            url = _candidate_url(raw, base_url, scan.resolve)
            if url is None:
                continue
            alt = ""
            if scan.source is SourceKind.IMG_TAG:
                if raw not in alt_cache:
                    alt_cache[raw] = find_alt_text(markup, raw)
                alt = alt_cache[raw]
            candidates.append(ImageCandidate(url=url, source=scan.source, alt=alt))
            found += 1
        logger.debug("%s scan found %d candidate(s)", scan.source.value, found)
    return candidates
