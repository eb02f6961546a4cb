"""Tests for probe.models -- validation and wire format."""

import json
import unittest
from datetime import datetime, timedelta, timezone

from probe.models import AnalyticsSummary, ProbeResult, ServerResult

_TZ = timezone(timedelta(hours=2))


def _result(**overrides):
    fields = dict(
        timestamp=datetime(2026, 5, 4, 9, 30, 15, tzinfo=_TZ),
        ping=24,
        jitter=3,
        packet_loss=0.0,
        download_speed=87.5,
        upload_speed=21.25,
        signal_quality=100,
        consistency=92.4,
    )
    fields.update(overrides)
    return ProbeResult(**fields)


class TestProbeResultValidation(unittest.TestCase):
    def test_naive_timestamp_rejected(self):
        with self.assertRaises(ValueError):
            _result(timestamp=datetime(2026, 5, 4, 9, 30))

    def test_negative_values_rejected(self):
        for name in ("ping", "jitter", "packet_loss", "download_speed", "upload_speed"):
            with self.subTest(field=name), self.assertRaises(ValueError):
                _result(**{name: -1})

    def test_scores_out_of_range_rejected(self):
        with self.assertRaises(ValueError):
            _result(signal_quality=101)
        with self.assertRaises(ValueError):
            _result(consistency=-0.1)

    def test_frozen(self):
        r = _result()
        with self.assertRaises(AttributeError):
            r.ping = 1


class TestWireFormat(unittest.TestCase):
    def test_camel_case_keys(self):
        d = _result().to_dict()
        self.assertEqual(
            list(d),
            ["timestamp", "ping", "jitter", "packetLoss", "downloadSpeed",
             "uploadSpeed", "signalQuality", "consistency"],
        )
        self.assertEqual(d["timestamp"], "2026-05-04T09:30:15+02:00")

    def test_round_trip_through_json(self):
        original = _result()
        restored = ProbeResult.from_dict(json.loads(json.dumps(original.to_dict())))
        self.assertEqual(restored, original)
        self.assertEqual(restored.timestamp.utcoffset(), timedelta(hours=2))

    def test_round_trip_with_servers(self):
        server = ServerResult(name="Cloudflare", url="https://cdn.example/x.js", ping=12,
                              jitter=2, download_speed=40.0, upload_speed=16.0,
                              signal_quality=100)
        original = _result(servers=(server,))
        d = original.to_dict()
        self.assertEqual(d["servers"][0]["downloadSpeed"], 40.0)
        self.assertEqual(ProbeResult.from_dict(d), original)

    def test_missing_optional_keys_default(self):
        d = _result().to_dict()
        del d["signalQuality"], d["consistency"], d["packetLoss"]
        r = ProbeResult.from_dict(d)
        self.assertEqual(r.signal_quality, 0)
        self.assertEqual(r.consistency, 100)
        self.assertEqual(r.packet_loss, 0)

    def test_missing_required_key(self):
        d = _result().to_dict()
        del d["downloadSpeed"]
        with self.assertRaises(KeyError):
            ProbeResult.from_dict(d)


class TestAnalyticsSummary(unittest.TestCase):
    def test_empty_defaults(self):
        s = AnalyticsSummary(window="7d")
        self.assertFalse(s.has_data)
        self.assertEqual(s.trend_percent, {"download": 0, "upload": 0, "ping": 0})
        self.assertIsNone(s.to_dict()["peakHour"])

    def test_trend_dicts_not_shared(self):
        a, b = AnalyticsSummary(window="all"), AnalyticsSummary(window="all")
        self.assertIsNot(a.trend_percent, b.trend_percent)

    def test_serialized_ping_trend_reads_as_improvement(self):
        s = AnalyticsSummary(window="7d", total_tests=4,
                             trend_percent={"download": 10, "upload": -5, "ping": -50})
        self.assertEqual(s.to_dict()["trendPercent"], {"download": 10, "upload": -5, "ping": 50})
        # the stored value stays raw
        self.assertEqual(s.trend_percent["ping"], -50)


if __name__ == "__main__":
    unittest.main()
