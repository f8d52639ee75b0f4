"""MCP server exposing image-collector analyze/download tools."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from .collector import analyze as analyze_page
from .collector import download as download_resource
from .collector import health_check
from .config import CollectorConfig
from .utils import unique_path

logger = logging.getLogger("image_collector.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="image-collector")


@mcp.tool()
def analyze(
    url: str,
    probe_sizes: bool = True,
) -> Dict[str, Any]:
    """List the images referenced by a web page, largest first."""

    config = CollectorConfig.from_env()
    result = analyze_page(url, {"probeSizes": probe_sizes}, config)
    return result.to_dict()


@mcp.tool()
def download(
    url: str,
    output_dir: str,
) -> Dict[str, Any]:
    """Download one image into a local directory and report where it went."""

    directory = Path(output_dir).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    downloaded = download_resource(url, CollectorConfig.from_env())
    destination = unique_path(directory, downloaded.filename)
    destination.write_bytes(downloaded.content)
    return {
        "path": str(destination),
        "content_type": downloaded.content_type,
        "bytes": len(downloaded.content),
    }


@mcp.tool(name="test")
def health() -> Dict[str, Any]:
    """Report service health and library versions."""

    return health_check()


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
