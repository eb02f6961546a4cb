"""
Rich-based terminal dashboard for probe results.

All scoring and formatting helpers live in ``probe`` -- this module only
does presentation via the ``rich`` library.
"""
from __future__ import annotations

import statistics
from datetime import tzinfo
from typing import Callable, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from probe.analytics import group_by_hour
from probe.events import ERROR, SUCCESS, WARNING, Event, Notification, ProgressEvent
from probe.models import AnalyticsSummary, ProbeResult
from probe.scoring import detect_issues, health_score, health_status, quality_labels, recommendations
from probe.stats import format_latency, format_speed

console = Console()

_LABEL_COLORS = {"Excellent": "green", "Good": "green", "Fair": "yellow", "Poor": "red"}
_LEVEL_STYLES = {SUCCESS: "green", WARNING: "yellow", ERROR: "red"}
_REC_ICONS = {"success": "[green]✓[/green]", "info": "[blue]i[/blue]",
              "warning": "[yellow]![/yellow]", "error": "[red]✗[/red]"}


# ---------------------------------------------------------------------------
# Sparkline helper
# ---------------------------------------------------------------------------

_BARS = "▁▂▃▄▅▆▇█"


def sparkline(values: Sequence[float]) -> str:
    """Single-line Unicode sparkline chart."""
    if not values:
        return ""
    lo, hi = min(values), max(values)
    span = hi - lo if hi > lo else 1.0
    return "".join(
        _BARS[min(int((v - lo) / span * (len(_BARS) - 1)), len(_BARS) - 1)]
        for v in values
    )


def _labelled(text: str, label: str) -> str:
    color = _LABEL_COLORS.get(label, "white")
    return f"{text}  [{color}]{label}[/{color}]"


def format_trend(value: int, invert: bool = False) -> str:
    """
    Colored trend string.  With *invert* the sign is flipped before display,
    so a falling ping reads as an upward (green) improvement.
    """
    shown = -value if invert else value
    if shown == 0:
        return "[dim]0%[/dim]"
    color = "green" if shown > 0 else "red"
    arrow = "↑" if shown > 0 else "↓"
    return f"[{color}]{arrow} {abs(shown)}%[/{color}]"


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]SpeedLens[/bold cyan]\n"
            "[dim]Network speed and connection quality from the terminal[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_results(result: ProbeResult, unit: str = "Mbps") -> None:
    """Print the metrics panel, health score, advice and detected issues."""
    labels = quality_labels(result)

    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="bold")
    table.add_column(justify="right")
    table.add_row("Download:", _labelled(f"[bold green]{format_speed(result.download_speed, unit)}[/bold green]", labels["download"]))
    table.add_row("Upload:", _labelled(f"[bold blue]{format_speed(result.upload_speed, unit)}[/bold blue]", labels["upload"]))
    table.add_row("Ping:", _labelled(f"[bold yellow]{format_latency(result.ping)}[/bold yellow]", labels["ping"]))
    table.add_row("Jitter:", _labelled(format_latency(result.jitter), labels["jitter"]))
    table.add_row("Packet Loss:", f"{result.packet_loss:.1f}%")
    table.add_row("Signal Quality:", _labelled(f"{result.signal_quality}%", labels["signal"]))
    table.add_row("Consistency:", _labelled(f"{result.consistency:.0f}%", labels["consistency"]))

    health = health_score(result.download_speed, result.upload_speed, result.ping, result.jitter)
    status, color = health_status(health)

    console.print()
    console.print(Panel.fit(table, title="[bold]Results[/bold]", border_style="cyan"))
    console.print(f"  Network health: [bold {color}]{health}/100 ({status})[/bold {color}]")

    if result.servers:
        print_servers(result)

    recs = recommendations(result)
    if recs:
        console.print()
        for rec in recs:
            icon = _REC_ICONS.get(rec["type"], "-")
            console.print(f"  {icon} [bold]{rec['title']}[/bold]: {rec['description']}")

    for severity, message in detect_issues(result):
        style = "red" if severity == "error" else "yellow"
        console.print(f"  [{style}]{message}[/{style}]")
    console.print()


def print_simple(result: ProbeResult, unit: str = "Mbps") -> None:
    print(f"Ping: {result.ping} ms (jitter: {result.jitter} ms)")
    print(f"Download: {format_speed(result.download_speed, unit)}")
    print(f"Upload: {format_speed(result.upload_speed, unit)}")
    if result.packet_loss > 0:
        print(f"Packet Loss: {result.packet_loss:.1f}%")
    print(f"Signal Quality: {result.signal_quality}%")
    print(f"Consistency: {result.consistency:.0f}%")


def print_servers(result: ProbeResult) -> None:
    table = Table(title="Servers", box=box.ROUNDED)
    table.add_column("Server", style="bold")
    table.add_column("Ping", justify="right")
    table.add_column("Jitter", justify="right")
    table.add_column("Download", justify="right")
    table.add_column("Upload", justify="right")
    table.add_column("Quality", justify="right")
    for s in result.servers:
        table.add_row(
            s.name,
            format_latency(s.ping),
            format_latency(s.jitter),
            format_speed(s.download_speed),
            format_speed(s.upload_speed),
            f"{s.signal_quality}%",
        )
    console.print(table)


def print_history(results: Sequence[ProbeResult], unit: str = "Mbps", limit: int = 20) -> None:
    """Table of the most recent *limit* results plus sparklines."""
    if not results:
        console.print("[dim]No test history yet.[/dim]")
        return

    shown = list(results[:limit])
    table = Table(title="Test History", box=box.ROUNDED)
    table.add_column("Date", style="dim")
    table.add_column("Download", justify="right", style="green")
    table.add_column("Upload", justify="right", style="blue")
    table.add_column("Ping", justify="right", style="yellow")
    table.add_column("Jitter", justify="right")
    table.add_column("Quality", justify="right")

    for r in shown:
        table.add_row(
            r.timestamp.strftime("%Y-%m-%d %H:%M"),
            format_speed(r.download_speed, unit),
            format_speed(r.upload_speed, unit),
            format_latency(r.ping),
            format_latency(r.jitter),
            f"{r.signal_quality}%",
        )
    console.print(table)

    # oldest to newest reads left to right
    chronological = list(reversed(shown))
    console.print(f"  Download  [green]{sparkline([r.download_speed for r in chronological])}[/green]")
    console.print(f"  Upload    [blue]{sparkline([r.upload_speed for r in chronological])}[/blue]")
    console.print(f"  Ping      [yellow]{sparkline([r.ping for r in chronological])}[/yellow]")


def hourly_rows(
    results: Sequence[ProbeResult],
    tz: Optional[tzinfo] = None,
) -> List[Dict[str, object]]:
    """Per-hour averages in *tz* (local time by default), sorted by hour."""
    rows = []
    for hour, data in sorted(group_by_hour(results, tz).items()):
        rows.append({
            "hour": f"{hour:02d}:00",
            "tests": len(data["ping"]),
            "avg_download": statistics.mean(data["download"]),
            "avg_upload": statistics.mean(data["upload"]),
            "avg_ping": statistics.mean(data["ping"]),
        })
    return rows


def print_analytics(
    summary: AnalyticsSummary,
    results: Sequence[ProbeResult] = (),
    unit: str = "Mbps",
) -> None:
    if not summary.has_data:
        console.print(f"[dim]No tests in the last {summary.window}.[/dim]")
        return

    trend = summary.trend_percent
    table = Table(title=f"Analytics ({summary.window})", box=box.ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("Average", justify="right")
    table.add_column("Best", justify="right")
    table.add_column("Trend", justify="right")
    table.add_row("Download", format_speed(summary.avg_download, unit),
                  format_speed(summary.max_download, unit), format_trend(trend["download"]))
    table.add_row("Upload", format_speed(summary.avg_upload, unit),
                  format_speed(summary.max_upload, unit), format_trend(trend["upload"]))
    table.add_row("Ping", f"{summary.avg_ping:.1f} ms", format_latency(summary.min_ping),
                  format_trend(trend["ping"], invert=True))
    console.print(table)

    peak = "-" if summary.peak_hour is None else f"{summary.peak_hour:02d}:00"
    console.print(
        f"  Tests: {summary.total_tests}   "
        f"Tests/day (this month): {summary.test_frequency}   "
        f"Peak hour: {peak}"
    )

    rows = hourly_rows(results)
    if rows:
        ht = Table(title="By Hour of Day", box=box.SIMPLE)
        ht.add_column("Hour", style="dim")
        ht.add_column("Tests", justify="right")
        ht.add_column("Download", justify="right")
        ht.add_column("Upload", justify="right")
        ht.add_column("Ping", justify="right")
        for row in rows:
            ht.add_row(
                row["hour"],
                str(row["tests"]),
                format_speed(row["avg_download"], unit),
                format_speed(row["avg_upload"], unit),
                format_latency(row["avg_ping"]),
            )
        console.print(ht)


def print_notification(note: Notification) -> None:
    style = _LEVEL_STYLES.get(note.level, "cyan")
    console.print(f"[{style}]{note.message}[/{style}]")


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """A single ``rich`` progress bar driven by engine progress events."""

    def __init__(self) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=console,
        )
        self._task_id = None

    def start(self, description: str = "Starting") -> None:
        self.progress.start()
        self._task_id = self.progress.add_task(description, total=100)

    def update(self, event: ProgressEvent) -> None:
        if self._task_id is None:
            return
        self.progress.update(
            self._task_id,
            completed=event.percent,
            description=event.message or event.phase,
        )

    def stop(self) -> None:
        if self._task_id is not None:
            self.progress.stop()
            self._task_id = None


def make_listener(
    display: Optional[ProgressDisplay] = None,
    notify: bool = True,
) -> Callable[[Event], None]:
    """Engine listener that feeds *display* and prints notifications."""

    def listener(event: Event) -> None:
        if isinstance(event, ProgressEvent):
            if display is not None:
                display.update(event)
        elif notify:
            if display is not None:
                display.stop()
            print_notification(event)

    return listener
