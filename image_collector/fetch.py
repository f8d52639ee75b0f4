"""HTTP access: page retrieval, download proxying and size probing."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from .config import CollectorConfig
from .errors import HTTPStatusError, TransportError
from .images import detect_mime_type, extension_from_url, infer_image_extension
from .models import DownloadedFile
from .utils import derive_filename

logger = logging.getLogger("image_collector")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def build_session(config: CollectorConfig) -> requests.Session:
    """Create a session carrying the browser identification string."""
    session = requests.Session()
    session.headers["User-Agent"] = config.user_agent
    session.verify = config.verify_tls
    if not config.verify_tls:
        urllib3.disable_warnings(InsecureRequestWarning)
    return session


def _get(url: str, timeout: float, config: CollectorConfig, **kwargs) -> requests.Response:
    with build_session(config) as session:
        try:
            resp = session.get(url, timeout=timeout, allow_redirects=True, **kwargs)
        except requests.RequestException as exc:
            logger.error("Request to %s failed: %s", url, exc)
            raise TransportError(f"Request failed: {exc}") from exc
    if resp.status_code != 200:
        logger.error("Fetching %s returned HTTP %s", url, resp.status_code)
        raise HTTPStatusError(resp.status_code, url)
    return resp


def fetch_page(url: str, config: CollectorConfig) -> str:
    """Download the markup of ``url``."""
    logger.info("Fetching page %s", url)
    resp = _get(url, config.page_timeout, config)
    return resp.text


def fetch_for_download(url: str, config: CollectorConfig) -> DownloadedFile:
    """Fetch the bytes of a single resource for proxying back to the caller."""
    logger.info("Downloading %s", url)
    resp = _get(url, config.download_timeout, config, headers={"Referer": url})
    data = resp.content
    content_type = (
        resp.headers.get("Content-Type") or detect_mime_type(data) or DEFAULT_CONTENT_TYPE
    )
    extension = extension_from_url(url) or infer_image_extension(content_type, data)
    return DownloadedFile(
        url=url,
        content=data,
        content_type=content_type,
        filename=derive_filename(url, extension),
    )


def probe_size(
    url: str,
    config: CollectorConfig,
    session: Optional[requests.Session] = None,
) -> Optional[int]:
    """Return the advertised byte size of ``url`` or ``None`` when unknown.

    Only headers are requested. Failures of any kind are reported as ``None``
    so a single bad resource never aborts an analysis.
    """
    owns_session = session is None
    if session is None:
        session = build_session(config)
    try:
        resp = session.head(
            url,
            timeout=config.probe_timeout,
            allow_redirects=True,
            verify=config.verify_tls,
        )
        length = int(resp.headers.get("Content-Length", 0))
    except (requests.RequestException, ValueError) as exc:
        logger.debug("Size probe for %s failed: %s", url, exc)
        return None
    except Exception:  # pylint: disable=broad-except
        logger.debug("Unexpected error probing %s", url, exc_info=True)
        return None
    finally:
        if owns_session:
            session.close()
    return length if length > 0 else None


def probe_sizes(urls: Iterable[str], config: CollectorConfig) -> Dict[str, Optional[int]]:
    """Probe each distinct URL, at most ``config.probe_workers`` at a time."""
    unique: List[str] = list(dict.fromkeys(urls))
    if not unique:
        return {}
    workers = max(1, min(config.probe_workers, len(unique)))
    logger.debug("Probing %d URL(s) with %d worker(s)", len(unique), workers)
    if workers == 1:
        with build_session(config) as session:
            return {url: probe_size(url, config, session) for url in unique}
    with ThreadPoolExecutor(max_workers=workers) as pool:
        sizes = pool.map(lambda url: probe_size(url, config), unique)
        return dict(zip(unique, sizes))
