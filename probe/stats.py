"""
Network measurement statistics.

Pure functions -- no I/O, no side effects.  Everything here is
deterministic and easy to unit-test.  Empty inputs always produce 0
rather than raising or returning NaN.
"""
from __future__ import annotations

import math
import statistics
from typing import Sequence

from .constants import LOST_THRESHOLD_MS


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------

def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves upward: 2.5 -> 3 and -2.5 -> -2 (no banker's rounding)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


# ---------------------------------------------------------------------------
# Reductions
# ---------------------------------------------------------------------------

def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return statistics.fmean(values)


def calculate_jitter(samples: Sequence[float]) -> float:
    """Mean absolute difference between consecutive samples."""
    if len(samples) < 2:
        return 0.0
    diffs = [abs(samples[i] - samples[i - 1]) for i in range(1, len(samples))]
    return statistics.fmean(diffs)


def calculate_packet_loss(samples: Sequence[float], threshold_ms: float = LOST_THRESHOLD_MS) -> float:
    """Percentage of samples slower than *threshold_ms*."""
    if not samples:
        return 0.0
    lost = sum(1 for s in samples if s > threshold_ms)
    return lost / len(samples) * 100


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population standard deviation over mean; 0.0 when the mean is 0."""
    if not values:
        return 0.0
    avg = statistics.fmean(values)
    if avg == 0:
        return 0.0
    return statistics.pstdev(values) / avg


def throughput_mbps(payload_bytes: float, elapsed_seconds: float, cap: float) -> float:
    """Megabits per second for *payload_bytes* moved in *elapsed_seconds*, capped."""
    if elapsed_seconds <= 0:
        return cap
    speed = (payload_bytes * 8) / (elapsed_seconds * 1_000_000)
    return min(speed, cap)


def trend_percent(series: Sequence[float]) -> int:
    """
    Relative change between the first and second half of a chronological
    series, as a rounded percentage.  Works for any metric; callers decide
    whether a rise is good or bad.
    """
    if len(series) < 2:
        return 0
    mid = len(series) // 2
    first_avg = round_half_up(mean(series[:mid]), 2)
    second_avg = round_half_up(mean(series[mid:]), 2)
    if first_avg == 0:
        return 0
    return int(round_half_up((second_avg - first_avg) / first_avg * 100))


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_speed(speed_mbps: float, unit: str = "Mbps") -> str:
    """Human-readable speed string in the preferred *unit*."""
    if unit == "Kbps":
        return f"{speed_mbps * 1000:.0f} Kbps"
    if unit == "Gbps" or speed_mbps >= 1000:
        return f"{speed_mbps / 1000:.2f} Gbps"
    return f"{speed_mbps:.1f} Mbps"


def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.0f} ms"
