"""Command-line interface for the swapdesk client."""

from __future__ import annotations

import argparse
import sys

from swapdesk.config import Settings
from swapdesk.runtime import render_chart, search_assets, show_levels, show_portfolio, show_prices


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(description="Spot exchange order-ticket and market client")
    parser.add_argument("--swap-url", type=str, help="Swap server base URL")
    parser.add_argument("--accounts", type=str, help="Comma-separated accounts to stream")
    parser.add_argument("--state-db", type=str, help="SQLite state database path")
    parser.add_argument("--reports-dir", type=str, help="Chart output directory")
    parser.add_argument("--interval", type=int, help="Chart bucket size in seconds")
    parser.add_argument(
        "--no-stream",
        action="store_true",
        help="Skip the notification channel and use plain requests only",
    )
    parser.add_argument("--portfolio", metavar="ACCOUNT", help="List balances and orders of an account")
    parser.add_argument("--prices", action="store_true", help="List cached equity prices")
    parser.add_argument(
        "--levels",
        nargs=2,
        metavar=("MARKET_ID", "PAIR_ID"),
        help="List the aggregated order book of a pair",
    )
    parser.add_argument("--chart", metavar="PAIR_ID", help="Write an HTML price/volume chart for a pair")
    parser.add_argument("--search", metavar="QUERY", help="Look up assets by symbol or id")
    return parser


def selected_actions(args: argparse.Namespace) -> list[str]:
    actions = []
    if args.portfolio:
        actions.append("--portfolio")
    if args.prices:
        actions.append("--prices")
    if args.levels:
        actions.append("--levels")
    if args.chart:
        actions.append("--chart")
    if args.search:
        actions.append("--search")
    return actions


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Apply CLI values onto environment-derived settings."""
    overrides: dict[str, object] = {}
    if args.swap_url:
        overrides["swap_url"] = args.swap_url
    if args.accounts:
        overrides["accounts"] = args.accounts
    if args.state_db:
        overrides["state_db_path"] = args.state_db
    if args.reports_dir:
        overrides["reports_dir"] = args.reports_dir
    if args.interval is not None:
        overrides["series_interval_seconds"] = args.interval

    merged = settings.with_overrides(**overrides)
    actions = selected_actions(args)
    if len(actions) > 1:
        raise ValueError(f"Use only one action flag: {', '.join(actions)}")
    if args.interval is not None and not args.chart:
        raise ValueError("--interval requires --chart")
    return merged


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = apply_cli_overrides(Settings.from_env(), args)
    except ValueError as exc:
        print(f"Configuration error: {exc}")
        return 2
    stream = not args.no_stream
    if args.portfolio:
        return show_portfolio(settings, args.portfolio, stream=stream)
    if args.levels:
        market_id, pair_id = args.levels
        return show_levels(settings, market_id, pair_id, stream=stream)
    if args.chart:
        return render_chart(settings, args.chart, stream=stream)
    if args.search:
        return search_assets(settings, args.search, stream=stream)
    return show_prices(settings, stream=stream)


if __name__ == "__main__":
    sys.exit(main())
