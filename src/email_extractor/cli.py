"""CLI entrypoint for email-extractor."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

import uvicorn

from .api import create_app
from .config import DEFAULT_REQUEST_TIMEOUT, FetchConfig, ServerSettings
from .errors import ConfigError
from .io_csv import result_rows, write_rows
from .logging_utils import configure_logging, get_logger
from .pipeline import build_fetcher, extract_many
from .validation import load_lines_from_file, normalize_target_url


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(
        description="Email Extractor - scan a web page for contact email addresses."
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    commands = parser.add_subparsers(dest="command", required=True)

    extract_cmd = commands.add_parser("extract", help="Extract emails from one or more pages.")
    extract_cmd.add_argument("urls", nargs="*", help="Page URLs (https:// is assumed).")
    extract_cmd.add_argument("--urls-file", help="Path to URL file (one URL per line).")
    extract_cmd.add_argument("--output", help="Optional CSV output path.")
    extract_cmd.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help="Request timeout in seconds.",
    )
    extract_cmd.add_argument(
        "--no-progress", action="store_true", help="Disable tqdm progress bars."
    )

    serve_cmd = commands.add_parser("serve", help="Run the HTTP API.")
    serve_cmd.add_argument("--host", default="0.0.0.0", help="Bind address.")
    serve_cmd.add_argument("--port", type=int, help="Bind port (defaults to $PORT or 3000).")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse and pre-validate CLI input."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "extract" and not (args.urls or args.urls_file):
        parser.error("Provide at least one URL or --urls-file.")
    return args


def _materialize_urls(args: argparse.Namespace) -> list[str]:
    urls = list(args.urls)
    if args.urls_file:
        urls.extend(load_lines_from_file(args.urls_file))
    return [normalize_target_url(url) for url in urls]


def run_extract(args: argparse.Namespace) -> int:
    logger = get_logger()
    config = FetchConfig(timeout=args.timeout)
    results = extract_many(
        _materialize_urls(args),
        fetcher=build_fetcher(config, logger=logger),
        logger=logger,
        show_progress=not args.no_progress,
    )
    for result in results:
        if not result.success:
            print(f"{result.url}\tERROR\t{result.error}", file=sys.stderr)
            continue
        for email in result.emails:
            print(f"{result.url}\t{email}")
    if args.output:
        write_rows(args.output, result_rows(results))
        logger.info("Wrote results to %s", args.output)
    return 0 if all(result.success for result in results) else 1


def run_serve(args: argparse.Namespace) -> int:
    settings = ServerSettings.from_env()
    port = args.port or settings.port
    get_logger().info(
        "Email Extractor listening on %s:%d (%s, %d requests per %gs)",
        args.host,
        port,
        settings.environment,
        settings.rate_limit_points,
        settings.rate_limit_duration,
    )
    uvicorn.run(create_app(settings), host=args.host, port=port)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    args = parse_args(argv)
    configure_logging(args.verbose)
    logger = get_logger()
    try:
        if args.command == "serve":
            return run_serve(args)
        return run_extract(args)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
