"""Data models used throughout the collection pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .utils import content_disposition


class SourceKind(str, Enum):
    """Where in the markup an image reference was found."""

    IMG_TAG = "img_tag"
    CSS_BACKGROUND = "css_background"
    INLINE_STYLE = "inline_style"
    TEXT_URL = "text_url"
    LAZY_LOAD = "lazy_load"


@dataclass
class ImageCandidate:
    """Raw image reference discovered while scanning page markup."""

    url: str
    source: SourceKind
    alt: str = ""


@dataclass
class Resource:
    """Deduplicated image resource returned to the caller."""

    url: str
    source: SourceKind
    alt: str = ""
    size: Optional[int] = None
    type: str = "image"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "type": self.type,
            "source": self.source.value,
            "alt": self.alt,
            "size": self.size,
        }


@dataclass
class AnalysisResult:
    """Ranked resources for one analyzed page plus diagnostics."""

    resources: List[Resource]
    debug: Dict[str, Any] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.resources)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "resources": [resource.to_dict() for resource in self.resources],
            "total": self.total,
            "debug": dict(self.debug),
        }


@dataclass
class DownloadedFile:
    """Bytes of a single proxied resource with the metadata needed to serve them."""

    url: str
    content: bytes
    content_type: str
    filename: str

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": self.content_type,
            "Content-Length": str(len(self.content)),
            "Content-Disposition": content_disposition(self.filename),
        }


@dataclass
class BatchDownloadResult:
    """Outcome of downloading several resources one after another."""

    saved: List[Path] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.saved)

    @property
    def failed(self) -> int:
        return len(self.failures)
