#!/usr/bin/env python3
"""
SpeedLens -- network speed and connection quality from the terminal.

Usage::

    python speedlens.py                          # rich dashboard
    python speedlens.py --simple                 # plain text
    python speedlens.py --json                   # JSON to stdout
    python speedlens.py -o result.json           # save to file
    python speedlens.py --csv log.csv            # append CSV row
    python speedlens.py --multi-server           # best of several servers
    python speedlens.py --repeat 5 --interval 60 # repeat 5 times
    python speedlens.py --history                # show past results
    python speedlens.py --analytics 7d           # summary over a window
    python speedlens.py --export out.csv --format csv
    python speedlens.py --clear-history
    python speedlens.py --set speed_unit=Gbps   # change a setting
    python speedlens.py --settings               # show settings
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import Any, Dict, List, Optional

from rich.markup import escape

from probe.analytics import Window, filter_window, summarize
from probe.config import config_path, get_config_value, load_config, parse_assignment, set_config_value
from probe.constants import MAX_PING_COUNT, MAX_TIMEOUT, MIN_PING_COUNT, MIN_TIMEOUT
from probe.engine import ProbeEngine
from probe.events import ERROR, WARNING, Event, Notification
from probe.exceptions import PersistenceError
from probe.export import append_csv_row, export_history, save_json
from probe.history import HistoryStore, JsonFileStorage, default_history_path
from probe.logging_config import configure_logging
from probe.models import ProbeResult
from probe.sampler import Sampler
from ui.dashboard import (
    ProgressDisplay,
    console,
    make_listener,
    print_analytics,
    print_header,
    print_history,
    print_results,
    print_simple,
)

logger = logging.getLogger("speedlens")

WINDOW_CHOICES = [w.value for w in Window]
EXPORT_FORMATS = ("json", "csv")


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _validate(ping_count: int, timeout: float, repeat: int = 1, interval: float = 0.0) -> None:
    """Raise ``ValueError`` if any parameter is out of range."""
    if not MIN_PING_COUNT <= ping_count <= MAX_PING_COUNT:
        raise ValueError(f"Ping count must be between {MIN_PING_COUNT} and {MAX_PING_COUNT}")
    if not MIN_TIMEOUT <= timeout <= MAX_TIMEOUT:
        raise ValueError(f"Timeout must be between {MIN_TIMEOUT:.0f} and {MAX_TIMEOUT:.0f} s")
    if repeat < 1:
        raise ValueError("--repeat must be >= 1")
    if interval < 0:
        raise ValueError("--interval must be >= 0")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

def open_store() -> HistoryStore:
    """History store backed by the default file, loaded from disk."""
    store = HistoryStore(JsonFileStorage(default_history_path()))
    try:
        store.load()
    except PersistenceError as exc:
        logger.warning("Starting with empty history: %s", exc)
        console.print(f"[yellow]Warning: {exc}[/yellow]")
    return store


# ---------------------------------------------------------------------------
# Core test runner
# ---------------------------------------------------------------------------

def _quiet_listener(event: Event) -> None:
    """Listener for --json/--simple: only problems, and only on stderr."""
    if isinstance(event, Notification) and event.level in (WARNING, ERROR):
        print(event.message, file=sys.stderr)


async def run_probe(
    store: HistoryStore,
    config: Dict[str, Any],
    *,
    json_output: bool = False,
    output_file: Optional[str] = None,
    csv_file: Optional[str] = None,
    simple: bool = False,
    multi_server: bool = False,
    ping_count: Optional[int] = None,
    timeout: Optional[float] = None,
    sampler: Optional[Sampler] = None,
) -> Optional[ProbeResult]:
    """Run one probe cycle, present it and record it.  None if it failed."""

    show_ui = not json_output and not simple
    unit = config.get("speed_unit", "Mbps")

    if show_ui:
        print_header()

    if sampler is None:
        sampler = Sampler(
            endpoints=config["endpoints"],
            download_url=config["download_url"],
            upload_url=config["upload_url"],
            timeout=timeout or config["request_timeout"],
        )

    async with sampler:
        engine = ProbeEngine(
            store,
            sampler,
            ping_count=ping_count or config["ping_count"],
            servers=config["servers"],
        )

        progress: Optional[ProgressDisplay] = None
        if show_ui:
            progress = ProgressDisplay()
            progress.start("Initializing test...")
            engine.subscribe(make_listener(progress, notify=config.get("notifications", True)))
        else:
            engine.subscribe(_quiet_listener)

        try:
            if multi_server:
                result = await engine.start_multi_server_test()
            else:
                result = await engine.start_test()
        finally:
            if progress is not None:
                progress.stop()

    if result is None:
        return None

    if show_ui:
        print_results(result, unit)
    elif simple:
        print_simple(result, unit)

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))

    if output_file:
        save_json(result.to_dict(), output_file)
        if not json_output:
            console.print(f"[green]Results saved to:[/green] {output_file}")

    if csv_file:
        append_csv_row(csv_file, result)
        if not json_output:
            console.print(f"[green]CSV row appended to:[/green] {csv_file}")

    return result


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SpeedLens -- network speed and connection quality",
    )
    # Output modes
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--output", "-o", type=str, metavar="FILE", help="Save results to JSON file")
    parser.add_argument("--csv", type=str, metavar="FILE", help="Append results as CSV row")
    parser.add_argument("--simple", "-s", action="store_true", help="Simple output mode (no dashboard)")

    # Test parameters
    parser.add_argument("--multi-server", action="store_true", help="Test several servers and keep the best of each metric")
    parser.add_argument("--ping-count", type=int, default=None, metavar="N", help="Number of ping samples (default: from settings, 10)")
    parser.add_argument("--timeout", type=float, default=None, metavar="SECS", help="Per-request timeout in seconds (default: from settings, 10)")

    # Repeat mode
    parser.add_argument("--repeat", type=int, default=1, metavar="N", help="Run the test N times (default: 1)")
    parser.add_argument("--interval", type=float, default=None, metavar="SECS", help="Seconds between repeated tests (default: from settings, 1800)")

    # History / analytics
    parser.add_argument("--history", action="store_true", help="Show past test results and exit")
    parser.add_argument("--analytics", choices=WINDOW_CHOICES, metavar="WINDOW", help=f"Show a summary over a time window ({', '.join(WINDOW_CHOICES)}) and exit")
    parser.add_argument("--export", type=str, metavar="FILE", help="Export history to FILE and exit")
    parser.add_argument("--format", choices=EXPORT_FORMATS, default="json", help="Export format (default: json)")
    parser.add_argument("--clear-history", action="store_true", help="Delete all saved results and exit")

    # Settings
    parser.add_argument("--set", action="append", default=[], metavar="KEY=VALUE", help="Change a setting (VALUE is read as JSON when possible); repeatable")
    parser.add_argument("--get", type=str, metavar="KEY", help="Print one setting as JSON and exit")
    parser.add_argument("--settings", action="store_true", help="Show the settings file location and values, then exit")
    return parser


def _run_settings(args: argparse.Namespace) -> bool:
    """Handle --set / --get / --settings.  Returns True if one ran."""
    if not (args.set or args.get or args.settings):
        return False

    for assignment in args.set:
        key, value = parse_assignment(assignment)
        path = set_config_value(key, value)
        console.print(f"[green]Saved {key} = {escape(json.dumps(value))} to:[/green] {path}")

    if args.get:
        print(json.dumps(get_config_value(args.get)))
    elif args.settings:
        console.print(f"[bold]Settings file:[/bold] {config_path()}")
        print(json.dumps(load_config(), indent=2))
    return True


def _run_maintenance(args: argparse.Namespace, config: Dict[str, Any]) -> bool:
    """Handle the history-only modes.  Returns True if one ran."""
    if not (args.history or args.analytics or args.export or args.clear_history):
        return False

    store = open_store()
    unit = config.get("speed_unit", "Mbps")

    if args.clear_history:
        store.clear()
        console.print("[green]Test history cleared.[/green]")
    elif args.export:
        window = Window(args.analytics or Window.ALL)
        results = filter_window(store.all(), window)
        summary = summarize(store.all(), window)
        export_history(results, args.export, args.format, summary=summary)
        console.print(f"[green]Exported {len(results)} results to:[/green] {args.export}")
    elif args.analytics:
        window = Window(args.analytics)
        summary = summarize(store.all(), window)
        if args.json:
            print(json.dumps(summary.to_dict(), indent=2))
        else:
            print_analytics(summary, filter_window(store.all(), window), unit)
    else:
        if args.json:
            print(json.dumps([r.to_dict() for r in store.all()], indent=2))
        else:
            print_history(store.all(), unit)
    return True


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging()
    config = load_config()

    try:
        if _run_settings(args) or _run_maintenance(args, config):
            return
    except (PersistenceError, ValueError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    ping_count = args.ping_count if args.ping_count is not None else config["ping_count"]
    timeout = args.timeout if args.timeout is not None else config["request_timeout"]
    interval = args.interval if args.interval is not None else config["auto_test_interval"]

    try:
        _validate(ping_count, timeout, args.repeat, interval)
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    store = open_store()
    failures = 0

    try:
        for run_idx in range(args.repeat):
            if args.repeat > 1 and not args.json:
                console.print(f"\n[bold cyan]--- Run {run_idx + 1}/{args.repeat} ---[/bold cyan]")

            result = asyncio.run(
                run_probe(
                    store,
                    config,
                    json_output=args.json,
                    output_file=args.output,
                    csv_file=args.csv,
                    simple=args.simple,
                    multi_server=args.multi_server,
                    ping_count=ping_count,
                    timeout=timeout,
                )
            )
            if result is None:
                failures += 1

            # Wait between runs (but not after the last one)
            if run_idx < args.repeat - 1:
                if not args.json:
                    console.print(f"[dim]Next run in {interval:.0f}s...[/dim]")
                time.sleep(interval)

    except KeyboardInterrupt:
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)
    except Exception as exc:
        logger.debug("Run aborted", exc_info=True)
        console.print(f"\n[red]Error: {exc}[/red]")
        sys.exit(1)

    if failures == args.repeat:
        sys.exit(1)


if __name__ == "__main__":
    main()
