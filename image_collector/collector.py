"""High-level orchestration for analyzing pages and downloading images."""

from __future__ import annotations

import logging
import platform
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import requests

from . import __version__
from .config import CollectorConfig
from .content import extract_resources
from .errors import (
    CollectorError,
    ExtractionError,
    HTTPStatusError,
    RequestError,
    ValidationError,
)
from .fetch import fetch_for_download, fetch_page, probe_sizes
from .images import dedupe_and_rank, dedupe_candidates
from .models import AnalysisResult, BatchDownloadResult, DownloadedFile, Resource
from .urls import is_valid_url
from .utils import unique_path

logger = logging.getLogger("image_collector")

Response = Union[Dict[str, Any], DownloadedFile]


def analyze(
    url: str,
    options: Optional[Mapping[str, Any]] = None,
    config: Optional[CollectorConfig] = None,
) -> AnalysisResult:
    """Fetch ``url`` and return its image resources, largest first.

    Recognised options are ``includeImages`` (skip extraction when false) and
    ``probeSizes`` (skip size probing when false, keeping discovery order).
    """
    config = config or CollectorConfig()
    options = options or {}
    if not is_valid_url(url):
        raise ValidationError("Invalid URL format")

    start = time.perf_counter()
    html = fetch_page(url, config)
    if not html:
        raise ExtractionError(url=url)

    candidates = extract_resources(html, url) if options.get("includeImages", True) else []
    unique = dedupe_candidates(candidates)
    sizes = (
        probe_sizes([candidate.url for candidate in unique], config)
        if options.get("probeSizes", True)
        else {}
    )
    resources = dedupe_and_rank(unique, sizes)
    elapsed = time.perf_counter() - start

    logger.info(
        "Found %d image(s) on %s from %d candidate(s) in %.2fs",
        len(resources),
        url,
        len(candidates),
        elapsed,
    )
    return AnalysisResult(
        resources=resources,
        debug={
            "html_length": len(html),
            "base_url": url,
            "candidates": len(candidates),
            "elapsed_seconds": round(elapsed, 3),
        },
    )


def download(url: str, config: Optional[CollectorConfig] = None) -> DownloadedFile:
    """Fetch a single resource so its bytes can be handed back verbatim."""
    if not is_valid_url(url):
        raise ValidationError("Invalid URL")
    return fetch_for_download(url, config or CollectorConfig())


def health_check() -> Dict[str, Any]:
    return {
        "success": True,
        "message": "API connection OK",
        "version": __version__,
        "python_version": platform.python_version(),
        "requests_version": requests.__version__,
    }


def select_resources(resources: Sequence[Resource], indices: Iterable[int]) -> List[Resource]:
    """Pick resources by position, keeping the order indices were given in."""
    selected: List[Resource] = []
    seen = set()
    for index in indices:
        if index < 0 or index >= len(resources):
            raise IndexError(
                f"Resource index {index} is out of range for {len(resources)} resource(s)"
            )
        if index in seen:
            continue
        seen.add(index)
        selected.append(resources[index])
    return selected


def download_batch(
    urls: Iterable[str],
    output_dir: Path,
    config: Optional[CollectorConfig] = None,
    delay: Optional[float] = None,
) -> BatchDownloadResult:
    """Download resources one at a time into ``output_dir``.

    A pause of ``delay`` seconds separates consecutive downloads. Failures are
    recorded and the batch continues.
    """
    config = config or CollectorConfig()
    delay = config.batch_delay if delay is None else delay
    output_dir.mkdir(parents=True, exist_ok=True)
    url_list = list(urls)
    result = BatchDownloadResult()

    for position, url in enumerate(url_list, start=1):
        try:
            downloaded = download(url, config)
            destination = unique_path(output_dir, downloaded.filename)
            destination.write_bytes(downloaded.content)
        except (CollectorError, OSError) as exc:
            logger.warning("Failed to download %s: %s", url, exc)
            result.failures.append((url, str(exc)))
        else:
            logger.info(
                "Saved %s (%d/%d) to %s", url, position, len(url_list), destination
            )
            result.saved.append(destination)
        if delay > 0 and position < len(url_list):
            time.sleep(delay)
    return result


def failure_response(
    exc: Exception,
    action: Optional[str],
    message: Optional[str] = None,
) -> Dict[str, Any]:
    debug_info: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "action": action,
        "python_version": platform.python_version(),
    }
    if isinstance(exc, HTTPStatusError):
        debug_info["status_code"] = exc.status_code
    return {"success": False, "message": message or str(exc), "debug_info": debug_info}


def _require_url(payload: Mapping[str, Any], message: str) -> str:
    url = payload.get("url")
    if not url:
        raise RequestError(message)
    if not isinstance(url, str):
        raise RequestError("url must be a string")
    return url


def handle_request(payload: Any, config: Optional[CollectorConfig] = None) -> Response:
    """Dispatch one JSON request object to the matching operation.

    Returns the JSON-ready response dict, or a :class:`DownloadedFile` for a
    successful download. Request-level failures are returned, not raised.
    """
    action: Optional[str] = None
    try:
        if not isinstance(payload, dict) or "action" not in payload:
            raise RequestError("Invalid request format")
        action = payload["action"]
        if action == "analyze":
            url = _require_url(payload, "Missing url parameter")
            options = payload.get("options") or {}
            if not isinstance(options, dict):
                raise RequestError("options must be an object")
            return analyze(url, options, config).to_dict()
        if action == "download":
            url = _require_url(payload, "Missing download url parameter")
            return download(url, config)
        if action == "test":
            return health_check()
        raise RequestError(f"Unknown action: {action}")
    except CollectorError as exc:
        logger.info("%s request failed: %s", action or "invalid", exc)
        return failure_response(exc, action)
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Unexpected error handling %s request", action)
        return failure_response(exc, action, message=f"Internal error: {exc}")
