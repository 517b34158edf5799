"""
CLI Interface for the gap scanner.
Provides command-line access to scans, universe refresh and session status.
"""

import asyncio
import argparse
import json
import sys
from typing import Any, Dict, List
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from gapscanner.config import get_settings
from gapscanner.models import ScanRequest
from gapscanner.orchestrator import ACTION_REFRESH_UNIVERSE, ScanOrchestrator
from gapscanner.trading_calendar import TradingCalendar
from gapscanner.utils.logging import setup_logging

console = Console()


def format_volume(volume: float) -> str:
    if volume >= 1_000_000:
        return f"{volume / 1_000_000:.1f}M"
    if volume >= 1_000:
        return f"{volume / 1_000:.0f}K"
    return str(int(volume))


def format_market_cap(cap: float) -> str:
    if not cap:
        return "N/A"
    if cap >= 1_000_000_000_000:
        return f"${cap / 1_000_000_000_000:.2f}T"
    if cap >= 1_000_000_000:
        return f"${cap / 1_000_000_000:.1f}B"
    return f"${cap / 1_000_000:.0f}M"


def build_gap_table(title: str, stocks: List[Dict[str, Any]], style: str) -> Table:
    """Render gainers or losers as a table."""
    table = Table(title=title, show_header=True, header_style=f"bold {style}")
    table.add_column("#", style="cyan", width=3)
    table.add_column("Symbol", style="bold", width=8)
    table.add_column("Name", width=28)
    table.add_column("Gap", justify="right", width=9)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Prev Close", justify="right", width=10)
    table.add_column("Volume", justify="right", width=8)
    table.add_column("Mkt Cap", justify="right", width=9)

    for i, s in enumerate(stocks, 1):
        table.add_row(
            str(i),
            s["symbol"],
            s["name"][:28],
            f"[{style}]{s['gapPercent']:+.2f}%[/{style}]",
            f"${s['price']:.2f}",
            f"${s['previousClose']:.2f}",
            format_volume(s["volume"]),
            format_market_cap(s["marketCap"]),
        )
    return table


def print_scan(payload: Dict[str, Any]):
    """Print a scan payload as summary panel plus gainer/loser tables."""
    if not payload.get("success"):
        console.print(Panel(
            f"{payload.get('error')}: {payload.get('message')}\n"
            f"Elapsed: {payload.get('durationMs', 0)}ms",
            title="Gap Scan Failed", border_style="red"
        ))
        return

    debug = payload["debug"]
    filters = payload["filters"]
    summary = f"""
    Trading Date: {payload['tradingDate']} (previous {payload['previousDate']})
    Session: {payload['marketSession']} ({payload['marketStatus']}){' - weekend' if payload['isWeekend'] else ''}
    Source: {payload['source']}
    Scanned: {payload['scanned']} of {debug['universeSize']}{f" (limit {debug['scanLimit']})" if debug.get('scanLimit') is not None else ''}
    Found: {payload['found']}
    Duration: {payload['durationMs'] / 1000:.1f}s

    Filters: gap >= {filters['minGapPercent']}%, volume >= {filters['minVolume']:,}, price <= ${filters['maxPrice']}, cap >= {format_market_cap(filters['minMarketCap'])}
    Skipped: ETF {debug['skippedETF']}, gap {debug['skippedGap']}, volume {debug['skippedVolume']}, price {debug['skippedPrice']}, cap {debug['skippedMarketCap']}
    Quote failures: {debug['quoteFailures']}, no data: {debug.get('noData', 0)}
    """
    console.print(Panel(summary, title="Gap Scan Summary", border_style="green"))

    data = payload["data"]
    if data["gainers"]:
        console.print(build_gap_table("Top Gainers", data["gainers"], "green"))
    else:
        console.print("[yellow]No gainers found[/yellow]")
    if data["losers"]:
        console.print(build_gap_table("Top Losers", data["losers"], "red"))
    else:
        console.print("[yellow]No losers found[/yellow]")


async def run_scan(request: ScanRequest, as_json: bool = False) -> int:
    """Run one scan and print it."""
    orchestrator = ScanOrchestrator.from_settings()
    try:
        if as_json:
            payload = await orchestrator.run_scan(request)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Scanning for gaps...", total=None)
                payload = await orchestrator.run_scan(request)
                progress.update(task, description="Scan complete!")
    finally:
        await orchestrator.close()

    if as_json:
        print(json.dumps(payload, indent=2, default=str))
    else:
        print_scan(payload)
    return 0 if payload.get("success") else 1


async def refresh_universe() -> int:
    """Rebuild the stored stock universe."""
    orchestrator = ScanOrchestrator.from_settings()
    try:
        result = await orchestrator.handle_action({"action": ACTION_REFRESH_UNIVERSE})
    finally:
        await orchestrator.close()

    style = "green" if result.get("success") else "red"
    console.print(Panel(json.dumps(result, indent=2), title="Universe Refresh", border_style=style))
    return 0 if result.get("success") else 1


def show_session() -> int:
    """Print the trading calendar view of right now."""
    settings = get_settings()
    calendar = TradingCalendar(extra_holidays=settings.extra_holidays)
    now = calendar.now()
    session = calendar.market_session(now)
    trading_date = calendar.trading_date(now)

    console.print(Panel(f"""
    Now (ET): {now.strftime('%Y-%m-%d %H:%M %Z')}
    Session: {session.session.value}
    Market Status: {session.market_status}
    Pre-Market: {session.is_pre_market}
    Weekend: {calendar.is_weekend(now.date())}
    Holiday: {calendar.is_holiday(now.date())}
    Trading Date: {trading_date}
    Previous Trading Date: {calendar.last_trading_date(trading_date)}
    """, title="Market Session", border_style="cyan"))
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Gap Scanner - find stocks gapping versus the previous close"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    scan_parser = subparsers.add_parser("scan", help="Run a gap scan")
    scan_parser.add_argument("--dry-run", action="store_true", help="Skip cache read and write")
    scan_parser.add_argument("--limit", type=int, default=5000, help="Scan only the first N symbols")
    scan_parser.add_argument("--force-refresh", action="store_true", help="Rebuild the universe first")
    scan_parser.add_argument("--no-cache", action="store_true", help="Ignore today's cached result")
    scan_parser.add_argument("--min-gap", type=float, default=None, help="Minimum absolute gap percent")
    scan_parser.add_argument("--json", action="store_true", help="Print the raw JSON payload")

    subparsers.add_parser("refresh-universe", help="Rebuild the stored stock universe")
    subparsers.add_parser("session", help="Show market session and trading dates")

    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings)

    if args.command == "scan":
        request = ScanRequest(
            dry_run=args.dry_run,
            limit=args.limit,
            force_refresh=args.force_refresh,
            use_cache=not args.no_cache,
            min_gap_percent=args.min_gap,
        )
        sys.exit(asyncio.run(run_scan(request, as_json=args.json)))
    elif args.command == "refresh-universe":
        sys.exit(asyncio.run(refresh_universe()))
    elif args.command == "session":
        sys.exit(show_session())
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
