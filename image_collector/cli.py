"""Command-line entry point for the image collector."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Sequence

from .collector import analyze, download_batch, select_resources
from .config import CollectorConfig
from .errors import CollectorError
from .models import AnalysisResult, BatchDownloadResult
from .utils import format_size

logger = logging.getLogger("image_collector.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("analyze", *argv)


def _parse_indices(value: str) -> List[int]:
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"expected comma-separated indices, got {value!r}"
        ) from exc


def _add_network_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Page fetch timeout in seconds",
    )
    parser.add_argument(
        "--download-timeout",
        type=float,
        default=60.0,
        help="Per-image download timeout in seconds",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_probe_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--probe-timeout",
        type=float,
        default=5.0,
        help="Timeout in seconds for each size probe",
    )
    parser.add_argument(
        "--probe-workers",
        type=int,
        default=8,
        help="Maximum number of size probes in flight at once (1 probes sequentially)",
    )
    parser.add_argument(
        "--no-probe",
        action="store_true",
        help="Skip size probing and keep discovery order",
    )


def _add_batch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        default="images",
        type=Path,
        help="Directory where downloaded images should be written",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=0.5,
        help="Seconds to pause between consecutive downloads",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Find the images referenced by a web page and download them.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze", help="List the images a page references, largest first"
    )
    analyze_parser.add_argument("url", help="Page URL to analyze")
    analyze_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw JSON response instead of a table",
    )
    _add_network_arguments(analyze_parser)
    _add_probe_arguments(analyze_parser)

    download_parser = subparsers.add_parser(
        "download", help="Download one or more image URLs"
    )
    download_parser.add_argument("urls", nargs="+", help="Image URLs to download")
    _add_batch_arguments(download_parser)
    _add_network_arguments(download_parser)

    collect_parser = subparsers.add_parser(
        "collect", help="Analyze a page and download the selected images"
    )
    collect_parser.add_argument("url", help="Page URL to analyze")
    collect_parser.add_argument(
        "--select",
        type=_parse_indices,
        default=None,
        help="Comma-separated result indices to download (default: all)",
    )
    _add_batch_arguments(collect_parser)
    _add_network_arguments(collect_parser)
    _add_probe_arguments(collect_parser)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def build_config(args: argparse.Namespace) -> CollectorConfig:
    config = CollectorConfig(
        page_timeout=args.timeout,
        download_timeout=args.download_timeout,
    )
    if hasattr(args, "probe_timeout"):
        config.probe_timeout = args.probe_timeout
        config.probe_workers = max(1, args.probe_workers)
    if hasattr(args, "delay"):
        config.batch_delay = args.delay
    return config


def _print_resources(result: AnalysisResult) -> None:
    if not result.resources:
        print("No images found. The site may build its images with scripts or block crawlers.")
        return
    for index, resource in enumerate(result.resources):
        size = format_size(resource.size)
        line = f"[{index:3d}] {size:>12}  {resource.source.value:<14} {resource.url}"
        if resource.alt:
            line += f"  ({resource.alt})"
        print(line)
    print(f"{result.total} image(s) found")


def _report_batch(result: BatchDownloadResult) -> None:
    for url, message in result.failures:
        logger.error("Could not download %s: %s", url, message)
    logger.info(
        "Batch download finished: %d succeeded, %d failed",
        result.succeeded,
        result.failed,
    )


def _run_analyze(args: argparse.Namespace) -> int:
    config = build_config(args)
    result = analyze(args.url, {"probeSizes": not args.no_probe}, config)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_resources(result)
    return 0


def _run_download(args: argparse.Namespace) -> int:
    config = build_config(args)
    result = download_batch(args.urls, Path(args.output).resolve(), config)
    _report_batch(result)
    return 0 if not result.failed else 1


def _run_collect(args: argparse.Namespace) -> int:
    config = build_config(args)
    analysis = analyze(args.url, {"probeSizes": not args.no_probe}, config)
    _print_resources(analysis)
    if not analysis.resources:
        return 0
    if args.select is None:
        selected = analysis.resources
    else:
        try:
            selected = select_resources(analysis.resources, args.select)
        except IndexError as exc:
            logger.error("%s", exc)
            return 2
    if not selected:
        logger.info("Nothing selected for download")
        return 0

    start = time.perf_counter()
    result = download_batch(
        [resource.url for resource in selected], Path(args.output).resolve(), config
    )
    logger.debug("Downloads took %.2fs", time.perf_counter() - start)
    _report_batch(result)
    return 0 if not result.failed else 1


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "image_collector.server:app",
        host=args.host,
        port=args.port,
        log_level="debug" if args.verbose else "info",
    )
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    handlers = {
        "analyze": _run_analyze,
        "download": _run_download,
        "collect": _run_collect,
        "serve": _run_serve,
    }
    try:
        code = handlers[args.command](args)
    except CollectorError as exc:
        logger.error("%s", exc)
        code = 1
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
