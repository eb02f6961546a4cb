"""
Data models shared by the sampler, scorer, history store and analytics.

Wire keys are camelCase so persisted history and JSON exports keep the
field names users already have on disk.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple


def now_local() -> datetime:
    """Timezone-aware current time with the local UTC offset."""
    return datetime.now().astimezone()


# ---------------------------------------------------------------------------
# Samples
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProbeSample:
    """One timed network round-trip."""

    elapsed_ms: float
    fallback: bool = False


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ServerResult:
    """Outcome of probing a single server in a multi-server cycle."""

    name: str
    url: str
    ping: int = 0
    jitter: int = 0
    packet_loss: float = 0.0
    download_speed: float = 0.0
    upload_speed: float = 0.0
    signal_quality: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> ServerResult:
        return cls(
            name=data.get("name", ""),
            url=data.get("url", ""),
            ping=int(data.get("ping", 0)),
            jitter=int(data.get("jitter", 0)),
            packet_loss=float(data.get("packetLoss", 0)),
            download_speed=float(data.get("downloadSpeed", 0)),
            upload_speed=float(data.get("uploadSpeed", 0)),
            signal_quality=int(data.get("signalQuality", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "ping": self.ping,
            "jitter": self.jitter,
            "packetLoss": self.packet_loss,
            "downloadSpeed": self.download_speed,
            "uploadSpeed": self.upload_speed,
            "signalQuality": self.signal_quality,
        }


@dataclass(frozen=True)
class ProbeResult:
    """The output of one complete probe cycle.  Immutable once built."""

    timestamp: datetime
    ping: int
    jitter: int
    packet_loss: float
    download_speed: float
    upload_speed: float
    signal_quality: int
    consistency: float
    servers: Tuple[ServerResult, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        for name in ("ping", "jitter", "packet_loss", "download_speed", "upload_speed"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        for name in ("signal_quality", "consistency"):
            if not 0 <= getattr(self, name) <= 100:
                raise ValueError(f"{name} must be within [0, 100]")

    # -- Constructors -------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict) -> ProbeResult:
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            ping=int(data["ping"]),
            jitter=int(data["jitter"]),
            packet_loss=float(data.get("packetLoss", 0)),
            download_speed=float(data["downloadSpeed"]),
            upload_speed=float(data["uploadSpeed"]),
            signal_quality=int(data.get("signalQuality", 0)),
            consistency=float(data.get("consistency", 100)),
            servers=tuple(ServerResult.from_dict(s) for s in data.get("servers", [])),
        )

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "ping": self.ping,
            "jitter": self.jitter,
            "packetLoss": self.packet_loss,
            "downloadSpeed": self.download_speed,
            "uploadSpeed": self.upload_speed,
            "signalQuality": self.signal_quality,
            "consistency": self.consistency,
        }
        if self.servers:
            result["servers"] = [s.to_dict() for s in self.servers]
        return result


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalyticsSummary:
    """Summary statistics over a time-filtered slice of the history."""

    window: str
    total_tests: int = 0
    avg_download: float = 0.0
    avg_upload: float = 0.0
    avg_ping: float = 0.0
    max_download: float = 0.0
    max_upload: float = 0.0
    min_ping: int = 0
    trend_percent: Dict[str, int] = field(
        default_factory=lambda: {"download": 0, "upload": 0, "ping": 0}
    )
    test_frequency: float = 0.0
    peak_hour: Optional[int] = None

    @property
    def has_data(self) -> bool:
        return self.total_tests > 0

    @property
    def display_trend(self) -> Dict[str, int]:
        """Trends oriented so a positive number is an improvement (ping negated)."""
        trend = dict(self.trend_percent)
        trend["ping"] = -trend.get("ping", 0)
        return trend

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window": self.window,
            "totalTests": self.total_tests,
            "avgDownload": self.avg_download,
            "avgUpload": self.avg_upload,
            "avgPing": self.avg_ping,
            "maxDownload": self.max_download,
            "maxUpload": self.max_upload,
            "minPing": self.min_ping,
            "trendPercent": self.display_trend,
            "testFrequency": self.test_frequency,
            "peakHour": self.peak_hour,
        }
