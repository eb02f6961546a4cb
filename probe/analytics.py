"""
History analytics: time-window filtering, summaries, trends and
time-of-day analysis.

All functions are pure projections over a newest-first history; nothing
here writes state.  An empty window yields a zero summary, never NaN.
"""
from __future__ import annotations

import enum
from collections import Counter
from datetime import datetime, timedelta, tzinfo
from typing import Dict, List, Optional, Sequence

from .models import AnalyticsSummary, ProbeResult, ServerResult, now_local
from .stats import mean, round_half_up, trend_percent


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------

class Window(str, enum.Enum):
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"
    YEAR = "1y"
    ALL = "all"

    def cutoff(self, now: datetime) -> Optional[datetime]:
        """Earliest timestamp inside the window; None for ``all``."""
        span = _SPANS.get(self)
        return now - span if span is not None else None


_SPANS: Dict[Window, timedelta] = {
    Window.DAY: timedelta(hours=24),
    Window.WEEK: timedelta(days=7),
    Window.MONTH: timedelta(days=30),
    Window.YEAR: timedelta(days=365),
}


def filter_window(
    history: Sequence[ProbeResult],
    window: Window,
    now: Optional[datetime] = None,
) -> List[ProbeResult]:
    cutoff = Window(window).cutoff(now or now_local())
    if cutoff is None:
        return list(history)
    return [r for r in history if r.timestamp >= cutoff]


# ---------------------------------------------------------------------------
# Frequency / time-of-day
# ---------------------------------------------------------------------------

def daily_test_rate(history: Sequence[ProbeResult], now: Optional[datetime] = None) -> float:
    """
    Tests per day over the current calendar month so far, one decimal.

    Timestamps are read in *now*'s zone, so a result stored under another
    UTC offset still lands in the month it belongs to there.
    """
    now = now or now_local()
    this_month = []
    for r in history:
        when = r.timestamp.astimezone(now.tzinfo)
        if when.year == now.year and when.month == now.month:
            this_month.append(r)
    if not this_month:
        return 0.0
    return round_half_up(len(this_month) / now.day, 1)


def peak_hour(history: Sequence[ProbeResult], tz: Optional[tzinfo] = None) -> Optional[int]:
    """
    Hour of day (0-23) in *tz* with the most tests; ties go to the earliest
    hour.  *tz* defaults to the local zone.
    """
    if not history:
        return None
    counts = Counter(r.timestamp.astimezone(tz).hour for r in history)
    return min(counts, key=lambda hour: (-counts[hour], hour))


def group_by_hour(
    history: Sequence[ProbeResult],
    tz: Optional[tzinfo] = None,
) -> Dict[int, Dict[str, List[float]]]:
    """
    Group results by hour-of-day in *tz* (the local zone when None).

    Returns ``{hour: {"download": [...], "upload": [...], "ping": [...]}}``.
    """
    buckets: Dict[int, Dict[str, List[float]]] = {}
    for r in history:
        hour = r.timestamp.astimezone(tz).hour
        bucket = buckets.setdefault(hour, {"download": [], "upload": [], "ping": []})
        bucket["download"].append(r.download_speed)
        bucket["upload"].append(r.upload_speed)
        bucket["ping"].append(r.ping)
    return buckets


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def summarize(
    history: Sequence[ProbeResult],
    window: Window = Window.ALL,
    now: Optional[datetime] = None,
) -> AnalyticsSummary:
    """
    Summary of *history* (newest-first) restricted to *window*.

    Averages, extremes and trends cover the window only.  Test frequency and
    peak hour describe the whole history, the way the dashboard labels them.
    """
    window = Window(window)
    now = now or now_local()
    selected = filter_window(history, window, now)

    frequency = daily_test_rate(history, now)
    peak = peak_hour(history, now.tzinfo)

    if not selected:
        return AnalyticsSummary(window=window.value, test_frequency=frequency, peak_hour=peak)

    chronological = sorted(selected, key=lambda r: r.timestamp)
    downloads = [r.download_speed for r in chronological]
    uploads = [r.upload_speed for r in chronological]
    pings = [float(r.ping) for r in chronological]

    return AnalyticsSummary(
        window=window.value,
        total_tests=len(selected),
        avg_download=round_half_up(mean(downloads), 2),
        avg_upload=round_half_up(mean(uploads), 2),
        avg_ping=round_half_up(mean(pings), 2),
        max_download=max(downloads),
        max_upload=max(uploads),
        min_ping=int(min(pings)),
        trend_percent={
            "download": trend_percent(downloads),
            "upload": trend_percent(uploads),
            "ping": trend_percent(pings),
        },
        test_frequency=frequency,
        peak_hour=peak,
    )


# ---------------------------------------------------------------------------
# Multi-server
# ---------------------------------------------------------------------------

def best_of(
    servers: Sequence[ServerResult],
    consistency: float,
    timestamp: Optional[datetime] = None,
) -> Optional[ProbeResult]:
    """Combine per-server results into one result holding the best of each metric."""
    if not servers:
        return None
    return ProbeResult(
        timestamp=timestamp or now_local(),
        ping=min(s.ping for s in servers),
        jitter=min(s.jitter for s in servers),
        packet_loss=min(s.packet_loss for s in servers),
        download_speed=max(s.download_speed for s in servers),
        upload_speed=max(s.upload_speed for s in servers),
        signal_quality=max(s.signal_quality for s in servers),
        consistency=consistency,
        servers=tuple(servers),
    )
