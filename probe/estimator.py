"""
Point estimates from raw probe samples.

Throughput is the *maximum* over trials, not the mean: short web requests
understate bandwidth far more often than they overstate it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .models import ProbeSample
from .stats import calculate_jitter, calculate_packet_loss, mean, round_half_up


@dataclass(frozen=True)
class LatencyEstimate:
    ping: int = 0
    jitter: int = 0
    packet_loss: float = 0.0


def estimate_latency(samples: Sequence[ProbeSample]) -> LatencyEstimate:
    """Ping, jitter and packet loss from a sequence of latency samples."""
    times = [s.elapsed_ms for s in samples]
    if not times:
        return LatencyEstimate()
    return LatencyEstimate(
        ping=int(round_half_up(mean(times))),
        jitter=int(round_half_up(calculate_jitter(times))),
        packet_loss=calculate_packet_loss(times),
    )


def estimate_throughput(trials: Sequence[float]) -> float:
    """Best observed throughput across trials, 0.0 when there are none."""
    return max(trials, default=0.0)
