"""Shared fixtures for the image collector tests."""

from __future__ import annotations

from typing import Dict, Optional
from unittest.mock import MagicMock

import pytest

from image_collector.config import CollectorConfig

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def config():
    """Config that probes sequentially and never sleeps between downloads."""
    return CollectorConfig(probe_workers=1, batch_delay=0)


@pytest.fixture
def make_response():
    """Build a stand-in for ``requests.Response``."""

    def _make(
        status_code: int = 200,
        text: str = "",
        content: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
    ) -> MagicMock:
        resp = MagicMock()
        resp.status_code = status_code
        resp.text = text
        resp.content = content
        resp.headers = headers or {}
        return resp

    return _make
