"""SpeedLens probe engine -- sampling, estimation, scoring, history and analytics."""

from .analytics import Window, best_of, daily_test_rate, filter_window, peak_hour, summarize
from .engine import ProbeEngine
from .estimator import LatencyEstimate, estimate_latency, estimate_throughput
from .events import Notification, ProgressEvent
from .exceptions import CycleCancelled, PersistenceError, ProbeError
from .history import HistoryStore, JsonFileStorage
from .models import AnalyticsSummary, ProbeResult, ProbeSample, ServerResult
from .sampler import RandomFallback, Sampler
from .scoring import consistency, health_score, health_status, score, signal_quality
from .stats import format_latency, format_speed, trend_percent

__all__ = [
    "AnalyticsSummary",
    "CycleCancelled",
    "HistoryStore",
    "JsonFileStorage",
    "LatencyEstimate",
    "Notification",
    "PersistenceError",
    "ProbeEngine",
    "ProbeError",
    "ProbeResult",
    "ProbeSample",
    "ProgressEvent",
    "RandomFallback",
    "Sampler",
    "ServerResult",
    "Window",
    "best_of",
    "consistency",
    "daily_test_rate",
    "estimate_latency",
    "estimate_throughput",
    "filter_window",
    "format_latency",
    "format_speed",
    "health_score",
    "health_status",
    "peak_hour",
    "score",
    "signal_quality",
    "summarize",
    "trend_percent",
]
