"""
Command-line interface for the dependency heartbeat tool.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from .dispatcher import DEFAULT_MAX_IN_FLIGHT, ConcurrentDispatcher
from .fetcher import DEFAULT_TIMEOUT, STATUS_SOURCES, StatusClient, get_status_source
from .manifest import ManifestError, load_manifest
from .models import StalenessPolicy
from .progress import BarProgress, make_progress
from .reporting import export_csv, log_summary, render_json, render_text


TOKEN_ENV = "DEPENDENCY_HEARTBEAT_TOKEN"

EPILOG = """
Examples:
  Run normally (with live progress):
    dependency-heartbeat .
  Run quietly with JSON output:
    dependency-heartbeat --quiet --json .
  Check dependencies not updated in 6 months:
    dependency-heartbeat --since 6m .
  Check dependencies not updated in 1 year and 3 months:
    dependency-heartbeat --since 1y3m .
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dependency-heartbeat",
        description="Check whether the direct dependencies of a project are still maintained",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "project_path",
        help="Project directory (containing go.mod or requirements.txt) or manifest file"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output"
    )

    parser.add_argument(
        "--since",
        default="2y",
        help="Age after which a dependency counts as unmaintained, e.g. 6m, 1y3m. Default: 2y"
    )

    parser.add_argument(
        "--ecosystem",
        choices=sorted(STATUS_SOURCES),
        default=None,
        help="Status source to query. Default: detected from the manifest"
    )

    parser.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_MAX_IN_FLIGHT,
        help=f"Maximum concurrent lookups. Default: {DEFAULT_MAX_IN_FLIGHT}"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Per-request timeout in seconds. Default: {DEFAULT_TIMEOUT}"
    )

    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Stop starting new lookups after this many seconds"
    )

    parser.add_argument(
        "--progress",
        choices=["lines", "bar"],
        default="lines",
        help="Progress display style. Default: lines"
    )

    parser.add_argument(
        "--csv",
        type=Path,
        default=None,
        help="Also write every verdict to this CSV file"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.concurrency < 1:
        parser.error("--concurrency must be at least 1")
    if args.timeout <= 0:
        parser.error("--timeout must be positive")

    try:
        policy = StalenessPolicy.from_string(args.since)
    except ValueError as e:
        print(f"Error: invalid --since value: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        info = load_manifest(args.project_path)
    except ManifestError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    source = get_status_source(args.ecosystem or info.ecosystem)

    # Keep stdout clean for JSON consumers.
    status_out = sys.stderr if args.json else sys.stdout
    print(f"Analyzing project at: {args.project_path}", file=status_out)
    print(f"Found {info.total_count} dependencies", file=status_out)
    print(f"Module: {info.module_name}", file=status_out)
    if info.language_version:
        print(f"Language Version: {info.language_version}", file=status_out)

    progress = make_progress(
        args.progress, info.direct_count, quiet=args.quiet, stream=status_out
    )
    with StatusClient(
        source=source, timeout=args.timeout, token=os.environ.get(TOKEN_ENV)
    ) as client:
        dispatcher = ConcurrentDispatcher(client, max_in_flight=args.concurrency)
        try:
            result = dispatcher.dispatch(
                info.requires,
                policy=policy,
                on_progress=progress,
                deadline=args.deadline,
            )
        finally:
            if isinstance(progress, BarProgress):
                progress.close()

    log_summary(info, result)
    if args.json:
        print(render_json(info, result))
    else:
        print(render_text(info, result))

    if args.csv is not None:
        csv_file = export_csv(result, args.csv)
        print(f"\nResults saved to: {csv_file}", file=status_out)


if __name__ == "__main__":
    main()
