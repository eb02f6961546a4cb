"""
Result export -- CSV and JSON.

CSV rows follow the order given, newest-first when taken straight from the
history store.  Both writers go through write-tmp-then-rename so a failed
export never leaves a half-written file behind.
"""
from __future__ import annotations

import csv
import io
import json
import os
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import PersistenceError
from .models import AnalyticsSummary, ProbeResult, now_local

BASE_COLUMNS = ["date", "download_mbps", "upload_mbps", "ping_ms", "jitter_ms"]
EXTENDED_COLUMNS = ["signal_quality", "consistency", "packet_loss"]


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def csv_header(extended: bool = True) -> List[str]:
    return BASE_COLUMNS + (EXTENDED_COLUMNS if extended else [])


def csv_row(result: ProbeResult, extended: bool = True) -> List[str]:
    row = [
        result.timestamp.isoformat(),
        f"{result.download_speed:.2f}",
        f"{result.upload_speed:.2f}",
        str(result.ping),
        str(result.jitter),
    ]
    if extended:
        row += [
            str(result.signal_quality),
            f"{result.consistency:.1f}",
            f"{result.packet_loss:.1f}",
        ]
    return row


def format_csv(
    results: Sequence[ProbeResult],
    extended: bool = True,
    summary: Optional[AnalyticsSummary] = None,
) -> str:
    """CSV text for *results*, optionally followed by a summary block."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(csv_header(extended))
    for result in results:
        writer.writerow(csv_row(result, extended))

    if summary is not None:
        writer.writerow([])
        writer.writerow(["summary", summary.window])
        writer.writerow(["total_tests", summary.total_tests])
        writer.writerow(["avg_download_mbps", f"{summary.avg_download:.2f}"])
        writer.writerow(["avg_upload_mbps", f"{summary.avg_upload:.2f}"])
        writer.writerow(["avg_ping_ms", f"{summary.avg_ping:.2f}"])
        writer.writerow(["max_download_mbps", f"{summary.max_download:.2f}"])
        writer.writerow(["max_upload_mbps", f"{summary.max_upload:.2f}"])
        writer.writerow(["min_ping_ms", summary.min_ping])
        writer.writerow(["tests_per_day", summary.test_frequency])
        writer.writerow(["peak_hour", "" if summary.peak_hour is None else summary.peak_hour])

    return buf.getvalue()


def append_csv_row(path: str, result: ProbeResult, extended: bool = True) -> None:
    """Append one row to *path*, writing the header first if the file is new."""
    write_header = not os.path.isfile(path) or os.path.getsize(path) == 0
    with open(path, "a", encoding="utf-8", newline="") as fh:
        writer = csv.writer(fh, lineterminator="\n")
        if write_header:
            writer.writerow(csv_header(extended))
        writer.writerow(csv_row(result, extended))


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def build_json_export(
    results: Sequence[ProbeResult],
    summary: Optional[AnalyticsSummary] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "exportDate": now_local().isoformat(),
        "testResults": [r.to_dict() for r in results],
    }
    if summary is not None:
        payload["summary"] = summary.to_dict()
    return payload


# ---------------------------------------------------------------------------
# Atomic writers
# ---------------------------------------------------------------------------

def save_text(text: str, filepath: str) -> None:
    """Write *text* to *filepath* atomically (write-tmp then rename)."""
    dir_path = os.path.dirname(filepath) or "."
    tmp = os.path.join(dir_path, f".tmp_{os.path.basename(filepath)}")

    try:
        with open(tmp, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        os.replace(tmp, filepath)
    except OSError as exc:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise PersistenceError(f"Failed to write {filepath}: {exc}") from exc


def save_json(payload: Dict[str, Any], filepath: str) -> None:
    save_text(json.dumps(payload, indent=2, ensure_ascii=False), filepath)


def export_history(
    results: Sequence[ProbeResult],
    filepath: str,
    fmt: str = "json",
    summary: Optional[AnalyticsSummary] = None,
) -> None:
    """Write *results* to *filepath* as ``json`` or ``csv``."""
    if fmt == "csv":
        save_text(format_csv(results, summary=summary), filepath)
    elif fmt == "json":
        save_json(build_json_export(results, summary), filepath)
    else:
        raise ValueError(f"Unknown export format: {fmt!r}")
