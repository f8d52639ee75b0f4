"""Image classification, format detection and ranking utilities."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Optional

from filetype import guess

from .models import ImageCandidate, Resource
from .urls import ABSOLUTE_URL_PATTERN

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "bmp", "webp", "svg", "ico", "tiff", "tif")
PATH_KEYWORDS = ("image", "img", "photo", "pic", "avatar", "thumb", "banner", "logo")

IMAGE_EXTENSION_PATTERN = re.compile(
    r"\.(%s)(\?.*)?$" % "|".join(IMAGE_EXTENSIONS), re.IGNORECASE
)
PATH_KEYWORD_PATTERN = re.compile(r"/(%s)/" % "|".join(PATH_KEYWORDS), re.IGNORECASE)


def looks_like_image(url: Optional[str]) -> bool:
    """Guess whether a URL points at an image from its extension or path."""
    if not url:
        return False
    if IMAGE_EXTENSION_PATTERN.search(url):
        return True
    return bool(PATH_KEYWORD_PATTERN.search(url) and ABSOLUTE_URL_PATTERN.match(url))


def extension_from_url(url: str) -> Optional[str]:
    match = IMAGE_EXTENSION_PATTERN.search(url)
    return match.group(1).lower() if match else None


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def detect_mime_type(data: bytes) -> Optional[str]:
    kind = guess(data)
    return kind.mime if kind else None


def infer_image_extension(content_type: Optional[str], data: bytes) -> Optional[str]:
    """Guess an image file extension from HTTP metadata or file signature."""
    detected = detect_image_format(data)
    if detected:
        return detected
    if not content_type:
        return None
    parts = content_type.split(";")[0].split("/")
    if len(parts) == 2 and parts[0].strip().lower() == "image":
        ext = parts[1].strip().lower()
        if ext == "jpeg":
            ext = "jpg"
        elif ext == "svg+xml":
            ext = "svg"
        return ext
    return None


def dedupe_candidates(candidates: Iterable[ImageCandidate]) -> List[ImageCandidate]:
    """Keep the first candidate seen for each URL."""
    seen: Dict[str, ImageCandidate] = {}
    for candidate in candidates:
        if candidate.url not in seen:
            seen[candidate.url] = candidate
    return list(seen.values())


def rank_resources(resources: Iterable[Resource]) -> List[Resource]:
    """Order resources largest first; unknown sizes rank as zero.

    ``sorted`` is stable, so equal sizes keep their discovery order.
    """
    return sorted(resources, key=lambda resource: resource.size or 0, reverse=True)


def dedupe_and_rank(
    candidates: Iterable[ImageCandidate],
    sizes: Optional[Mapping[str, Optional[int]]] = None,
) -> List[Resource]:
    """Collapse duplicate candidates and rank them by probed size."""
    sizes = sizes or {}
    resources = [
        Resource(
            url=candidate.url,
            source=candidate.source,
            alt=candidate.alt,
            size=sizes.get(candidate.url),
        )
        for candidate in dedupe_candidates(candidates)
    ]
    return rank_resources(resources)
