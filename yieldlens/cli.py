"""Command-line interface for yieldlens."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .formatting import format_apy
from .logging_setup import configure_logging
from .services import Portfolio, format_report


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="yieldlens",
        description="Value DeFi positions across protocols and score their yield",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    positions_parser = sub.add_parser("positions", help="List valued positions")
    positions_parser.add_argument("--wallet", default=None, help="Wallet address to read")

    score_parser = sub.add_parser("score", help="Aggregate metrics and yield score")
    score_parser.add_argument("--wallet", default=None, help="Wallet address to read")

    sub.add_parser("protocols", help="List configured protocols")
    sub.add_parser("check", help="Probe each enabled protocol's contracts")

    watch_parser = sub.add_parser("watch", help="Refresh scores on an interval")
    watch_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Refresh interval in minutes (overrides config)",
    )
    watch_parser.add_argument("--wallet", default=None, help="Wallet address to read")

    return parser


def _print_protocols(portfolio: Portfolio) -> None:
    protocols = portfolio.registry.all()
    if not protocols:
        print("No protocols configured.")
        return
    for p in protocols:
        state = "enabled" if p.enabled else "disabled"
        print(
            f"{p.logo or '•'} {p.name} [{p.id}] {p.template.value} on {p.chain} · "
            f"{p.position_type.value} · est. {format_apy(p.apy_estimate)} · {state}"
        )


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    portfolio = Portfolio(config)
    wallet = getattr(args, "wallet", None)

    if args.command in ("positions", "score"):
        if not portfolio.wallets(wallet):
            print("No wallets configured; pass --wallet.", file=sys.stderr)
            return 1
        for report in await portfolio.build_reports(wallet):
            print(format_report(report, show_positions=args.command == "positions"))
            print()
    elif args.command == "protocols":
        _print_protocols(portfolio)
    elif args.command == "check":
        status = await portfolio.check_protocols()
        for name, ok in status.items():
            print(f"{'✅' if ok else '❌'} {name}")
        return 0 if all(status.values()) else 1
    elif args.command == "watch":
        await portfolio.run_continuous(args.interval, wallet)
    else:
        build_parser().print_help()
        return 1
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))
