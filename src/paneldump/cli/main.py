"""
paneldump CLI

Usage:
    paneldump <command> [args]

Exports a Grafana panel's query results as Prometheus exposition text.
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from paneldump import __version__
from paneldump.config import get_settings
from paneldump.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="paneldump", description="Dump Grafana panel data")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="Log level (default: PANELDUMP_LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command")

    export_parser = subparsers.add_parser(
        "export",
        help="Run a panel's queries and save the result as exposition text",
    )
    export_parser.add_argument("--dashboard", help="Dashboard UID")
    export_parser.add_argument("--panel", help="Panel ID")
    export_parser.add_argument(
        "--timerange",
        help='Time range JSON, e.g. \'{"from": "now-6h", "to": "now"}\'',
    )
    export_parser.add_argument("--output-dir", help="Directory for the exported file")
    export_parser.add_argument("--datasource", help="Datasource UID (overrides the panel's)")

    queries_parser = subparsers.add_parser("queries", help="List a panel's queries")
    queries_parser.add_argument("--dashboard", help="Dashboard UID")
    queries_parser.add_argument("--panel", help="Panel ID")

    parse_parser = subparsers.add_parser("parse", help="List metric names used by PromQL expressions")
    parse_parser.add_argument("exprs", nargs="*", help="PromQL expressions")

    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP resources")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level or get_settings().log_level)

    if args.command == "export":
        from paneldump.cli.export import export_command

        sys.exit(
            export_command(
                args.dashboard,
                args.panel,
                args.timerange,
                output_dir=args.output_dir,
                datasource=args.datasource,
            )
        )

    if args.command == "queries":
        from paneldump.cli.export import queries_command

        sys.exit(queries_command(args.dashboard, args.panel))

    if args.command == "parse":
        from paneldump.cli.parse import parse_command

        sys.exit(parse_command(args.exprs))

    if args.command == "serve":
        from paneldump.cli.serve import serve_command

        sys.exit(serve_command(args.host, args.port))

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
