"""Exception hierarchy surfaced to callers as structured failure responses."""

from __future__ import annotations

from typing import Optional


class CollectorError(Exception):
    """Base class for failures reported back to the caller."""


class RequestError(CollectorError):
    """The request itself is malformed or lacks a required parameter."""


class ValidationError(CollectorError):
    """A supplied URL is not syntactically valid."""


class TransportError(CollectorError):
    """The page or download fetch failed at the network level."""


class HTTPStatusError(TransportError):
    """The upstream server answered with a status other than 200."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"HTTP error: {status_code}")
        self.status_code = status_code
        self.url = url


class ExtractionError(CollectorError):
    """The page was fetched but yielded nothing to extract from."""

    def __init__(self, message: str = "Unable to fetch page content", url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url
