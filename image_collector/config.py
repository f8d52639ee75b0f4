"""Configuration objects and constants for the image collector."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

logger = logging.getLogger("image_collector")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
ENV_PREFIX = "IMAGE_COLLECTOR_"

T = TypeVar("T")


@dataclass
class CollectorConfig:
    """Network settings shared by page fetches, size probes and downloads."""

    user_agent: str = DEFAULT_USER_AGENT
    page_timeout: float = 30.0
    probe_timeout: float = 5.0
    download_timeout: float = 60.0
    probe_workers: int = 8
    verify_tls: bool = False
    batch_delay: float = 0.5

    @classmethod
    def from_env(cls) -> "CollectorConfig":
        """Build a config, letting ``IMAGE_COLLECTOR_*`` variables override defaults."""
        config = cls()
        config.user_agent = os.getenv(ENV_PREFIX + "USER_AGENT") or config.user_agent
        config.page_timeout = _env_value("PAGE_TIMEOUT", float, config.page_timeout)
        config.probe_timeout = _env_value("PROBE_TIMEOUT", float, config.probe_timeout)
        config.download_timeout = _env_value(
            "DOWNLOAD_TIMEOUT", float, config.download_timeout
        )
        config.probe_workers = max(
            1, _env_value("PROBE_WORKERS", int, config.probe_workers)
        )
        return config


def _env_value(name: str, cast: Callable[[str], T], default: T) -> T:
    raw: Optional[str] = os.getenv(ENV_PREFIX + name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(
            "%s%s is set to %r which is not valid; falling back to %s",
            ENV_PREFIX,
            name,
            raw,
            default,
        )
        return default
