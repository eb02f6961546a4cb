"""
Quality scoring and diagnostics.

Signal quality is penalty-based, consistency comes from the spread of
recent download speeds, and the health score is a coarse bucket sum.  Bucket
boundaries are part of the contract; keep them exact.
"""
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from .constants import CONSISTENCY_WINDOW
from .estimator import LatencyEstimate
from .models import ProbeResult
from .stats import coefficient_of_variation


# ---------------------------------------------------------------------------
# Signal quality
# ---------------------------------------------------------------------------

# (severe threshold, severe penalty, mild threshold, mild penalty)
_PING_PENALTY = (100, 30, 50, 15)
_JITTER_PENALTY = (50, 20, 20, 10)
_LOSS_PENALTY = (5, 25, 1, 10)


def _penalty(value: float, bands: Tuple[float, int, float, int]) -> int:
    severe, severe_pts, mild, mild_pts = bands
    if value > severe:
        return severe_pts
    if value > mild:
        return mild_pts
    return 0


def signal_quality(ping: float, jitter: float, packet_loss: float) -> int:
    score = 100
    score -= _penalty(ping, _PING_PENALTY)
    score -= _penalty(jitter, _JITTER_PENALTY)
    score -= _penalty(packet_loss, _LOSS_PENALTY)
    return max(0, min(100, score))


# ---------------------------------------------------------------------------
# Consistency
# ---------------------------------------------------------------------------

def consistency(recent_downloads: Sequence[float]) -> float:
    """
    0-100 score from the coefficient of variation of *recent_downloads*.

    Fewer than two values is not enough to judge, so it scores a full 100.
    """
    if len(recent_downloads) < 2:
        return 100.0
    cv = coefficient_of_variation(recent_downloads)
    return max(100.0 - cv * 100.0, 0.0)


def score(estimate: LatencyEstimate, history: Sequence[ProbeResult]) -> Tuple[int, float]:
    """
    Return ``(signal_quality, consistency)`` for a fresh estimate.

    *history* is newest-first and must not yet contain the current result.
    """
    recent = [r.download_speed for r in history[:CONSISTENCY_WINDOW]]
    return (
        signal_quality(estimate.ping, estimate.jitter, estimate.packet_loss),
        consistency(recent),
    )


# ---------------------------------------------------------------------------
# Health score
# ---------------------------------------------------------------------------

# (minimum value, points), checked top-down; "higher is better" metrics
_DOWNLOAD_BUCKETS = [(50, 40), (25, 30), (10, 20), (5, 10)]
_UPLOAD_BUCKETS = [(10, 20), (5, 15), (2, 10), (1, 5)]
# (maximum value, points); "lower is better" metrics
_PING_BUCKETS = [(20, 25), (50, 20), (100, 15), (200, 10)]
_PING_FLOOR = 5
_JITTER_BUCKETS = [(5, 15), (10, 12), (20, 8), (50, 5)]


def _at_least(value: float, buckets: List[Tuple[float, int]], floor: int = 0) -> int:
    for threshold, points in buckets:
        if value >= threshold:
            return points
    return floor


def _at_most(value: float, buckets: List[Tuple[float, int]], floor: int = 0) -> int:
    for threshold, points in buckets:
        if value <= threshold:
            return points
    return floor


def health_score(download: float, upload: float, ping: float, jitter: float) -> int:
    """Weighted bucket sum: download 40, upload 20, ping 25, jitter 15."""
    total = (
        _at_least(download, _DOWNLOAD_BUCKETS)
        + _at_least(upload, _UPLOAD_BUCKETS)
        + _at_most(ping, _PING_BUCKETS, _PING_FLOOR)
        + _at_most(jitter, _JITTER_BUCKETS)
    )
    return max(0, min(100, total))


def health_status(value: int) -> Tuple[str, str]:
    """Return (label, color) for a health score."""
    if value >= 80:
        return ("Excellent", "green")
    if value >= 60:
        return ("Good", "green")
    if value >= 40:
        return ("Fair", "yellow")
    return ("Poor", "red")


# ---------------------------------------------------------------------------
# Quality labels
# ---------------------------------------------------------------------------

_SPEED_LABELS = {
    "download": (100, 50, 25),
    "upload": (50, 25, 10),
}


def speed_label(speed: float, direction: str = "download") -> str:
    excellent, good, fair = _SPEED_LABELS[direction]
    if speed >= excellent:
        return "Excellent"
    if speed >= good:
        return "Good"
    if speed >= fair:
        return "Fair"
    return "Poor"


def ping_label(ping: float) -> str:
    if ping <= 20:
        return "Excellent"
    if ping <= 50:
        return "Good"
    if ping <= 100:
        return "Fair"
    return "Poor"


def jitter_label(jitter: float) -> str:
    if jitter <= 5:
        return "Excellent"
    if jitter <= 15:
        return "Good"
    if jitter <= 30:
        return "Fair"
    return "Poor"


def score_label(value: float) -> str:
    """Label for 0-100 scores (signal quality, consistency)."""
    if value >= 90:
        return "Excellent"
    if value >= 70:
        return "Good"
    if value >= 50:
        return "Fair"
    return "Poor"


def quality_labels(result: ProbeResult) -> Dict[str, str]:
    return {
        "download": speed_label(result.download_speed, "download"),
        "upload": speed_label(result.upload_speed, "upload"),
        "ping": ping_label(result.ping),
        "jitter": jitter_label(result.jitter),
        "signal": score_label(result.signal_quality),
        "consistency": score_label(result.consistency),
    }


# ---------------------------------------------------------------------------
# Recommendations / issues
# ---------------------------------------------------------------------------

def recommendations(result: ProbeResult) -> List[Dict[str, str]]:
    """Advice entries with ``type``, ``title`` and ``description`` keys."""
    recs: List[Dict[str, str]] = []
    if result.download_speed < 25:
        recs.append({
            "type": "warning",
            "title": "Slow Download Speed",
            "description": "Your download speed is below 25 Mbps. Consider upgrading "
                           "your internet plan or checking for network issues.",
        })
    if result.upload_speed < 10:
        recs.append({
            "type": "info",
            "title": "Low Upload Speed",
            "description": "Upload speed is below 10 Mbps. This may affect video calls "
                           "and file uploads.",
        })
    if result.ping > 100:
        recs.append({
            "type": "error",
            "title": "High Latency",
            "description": "Your ping is over 100ms. This may cause issues with online "
                           "gaming and video calls.",
        })
    if result.jitter > 30:
        recs.append({
            "type": "warning",
            "title": "High Jitter",
            "description": "Network jitter is high. This can cause unstable connections "
                           "for real-time applications.",
        })
    if result.signal_quality > 90 and result.download_speed > 50:
        recs.append({
            "type": "success",
            "title": "Excellent Connection",
            "description": "Your internet connection is performing excellently! Perfect "
                           "for streaming, gaming, and video calls.",
        })
    return recs


def detect_issues(result: ProbeResult) -> List[Tuple[str, str]]:
    """Return (severity, message) pairs; empty when nothing looks wrong."""
    issues: List[Tuple[str, str]] = []
    if result.download_speed < 5:
        issues.append(("error", "Very slow download speed detected"))
    if result.upload_speed < 1:
        issues.append(("warning", "Upload speed is below recommended levels"))
    if result.ping > 100:
        issues.append(("warning", "High latency detected - may affect real-time applications"))
    if result.jitter > 30:
        issues.append(("warning", "High jitter detected - connection may be unstable"))
    return issues
