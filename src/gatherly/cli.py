from __future__ import annotations

import argparse
import logging
from datetime import timedelta
from typing import Optional, Sequence

from .config import get_settings
from .logging import configure_logging
from .services import QuotaController, ServiceContext


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings().server
    parser = argparse.ArgumentParser(description="Gatherly command line interface.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    api_parser = subparsers.add_parser("api", help="Start the FastAPI server exposing the activity tools.")
    api_parser.add_argument("--host", default=settings.host)
    api_parser.add_argument("--port", type=int, default=settings.api_port)

    mcp_parser = subparsers.add_parser("mcp", help="Start the FastMCP server for agent clients.")
    mcp_parser.add_argument("--host", default=settings.host)
    mcp_parser.add_argument("--port", type=int, default=settings.mcp_port)

    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Refund quota consumed by publishes that never reached active.",
    )
    reconcile_parser.add_argument(
        "--grace-seconds",
        type=int,
        default=None,
        help="Only settle ledger entries older than this (defaults to the configured grace period).",
    )

    return parser


def run_reconcile(grace_seconds: Optional[int] = None, *, context: Optional[ServiceContext] = None) -> int:
    context = context or ServiceContext()
    grace = timedelta(seconds=grace_seconds) if grace_seconds is not None else context.settings.quota.reconcile_grace
    report = QuotaController(context).reconcile(older_than=context.now() - grace)
    print(f"Refunded {len(report.refunded)} publishes, settled {len(report.settled)}.")
    return len(report.refunded)


def main(argv: Optional[Sequence[str]] = None) -> None:
    configure_logging()
    logging.getLogger(__name__).info("Gatherly CLI starting")
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "api":
        from .services.http import run_local_server

        run_local_server(host=args.host, port=args.port)
    elif args.command == "mcp":
        from .services.mcp import run_mcp_server

        run_mcp_server(host=args.host, port=args.port)
    elif args.command == "reconcile":
        run_reconcile(args.grace_seconds)
    else:  # pragma: no cover - argparse enforces choices
        parser.print_help()


if __name__ == "__main__":
    main()
