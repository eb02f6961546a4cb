"""Tests for probe.analytics -- windows, summaries, frequency and best-of."""

import unittest
from datetime import datetime, timedelta, timezone

from probe.analytics import (
    Window,
    best_of,
    daily_test_rate,
    filter_window,
    group_by_hour,
    peak_hour,
    summarize,
)
from probe.models import ProbeResult, ServerResult

_NOW = datetime(2026, 6, 10, 18, 0, tzinfo=timezone.utc)


def _at(when, download=50.0, upload=10.0, ping=20):
    return ProbeResult(
        timestamp=when,
        ping=ping,
        jitter=2,
        packet_loss=0.0,
        download_speed=download,
        upload_speed=upload,
        signal_quality=100,
        consistency=100.0,
    )


def _ago(hours, **kw):
    return _at(_NOW - timedelta(hours=hours), **kw)


class TestWindow(unittest.TestCase):
    def test_values(self):
        self.assertEqual([w.value for w in Window], ["24h", "7d", "30d", "1y", "all"])

    def test_cutoff(self):
        self.assertEqual(Window.DAY.cutoff(_NOW), _NOW - timedelta(hours=24))
        self.assertEqual(Window.YEAR.cutoff(_NOW), _NOW - timedelta(days=365))
        self.assertIsNone(Window.ALL.cutoff(_NOW))

    def test_filter_is_inclusive_at_cutoff(self):
        history = [_ago(1), _ago(24), _ago(25)]
        kept = filter_window(history, Window.DAY, _NOW)
        self.assertEqual(kept, history[:2])

    def test_filter_accepts_string(self):
        self.assertEqual(len(filter_window([_ago(100)], "7d", _NOW)), 1)


class TestSummarize(unittest.TestCase):
    def test_empty_history(self):
        s = summarize([], Window.WEEK, _NOW)
        self.assertFalse(s.has_data)
        self.assertEqual(s.total_tests, 0)
        self.assertEqual(s.avg_download, 0.0)
        self.assertEqual(s.min_ping, 0)
        self.assertEqual(s.trend_percent, {"download": 0, "upload": 0, "ping": 0})
        self.assertIsNone(s.peak_hour)

    def test_empty_window_with_older_history(self):
        s = summarize([_ago(24 * 40)], Window.WEEK, _NOW)
        self.assertEqual(s.total_tests, 0)
        self.assertEqual(s.window, "7d")

    def test_averages_and_extremes(self):
        history = [
            _ago(1, download=60.0, upload=12.0, ping=18),
            _ago(2, download=40.0, upload=8.0, ping=30),
            _ago(3, download=50.5, upload=9.0, ping=25),
        ]
        s = summarize(history, Window.DAY, _NOW)
        self.assertEqual(s.total_tests, 3)
        self.assertAlmostEqual(s.avg_download, 50.17)
        self.assertAlmostEqual(s.avg_upload, 9.67)
        self.assertAlmostEqual(s.avg_ping, 24.33)
        self.assertEqual(s.max_download, 60.0)
        self.assertEqual(s.max_upload, 12.0)
        self.assertEqual(s.min_ping, 18)

    def test_trend_uses_chronological_order(self):
        # newest-first input; oldest two at 10 Mbps, newest two at 20 Mbps
        history = [
            _ago(1, download=20.0, ping=10),
            _ago(2, download=20.0, ping=10),
            _ago(3, download=10.0, ping=20),
            _ago(4, download=10.0, ping=20),
        ]
        s = summarize(history, Window.ALL, _NOW)
        self.assertEqual(s.trend_percent["download"], 100)
        self.assertEqual(s.trend_percent["upload"], 0)
        # ping is reported raw; a falling ping is a negative trend
        self.assertEqual(s.trend_percent["ping"], -50)

    def test_frequency_and_peak_cover_full_history(self):
        history = [_ago(1), _ago(24 * 8)]
        s = summarize(history, Window.DAY, _NOW)
        self.assertEqual(s.total_tests, 1)
        self.assertEqual(s.test_frequency, 0.2)  # 2 tests in 10 days
        self.assertEqual(s.peak_hour, 17)


class TestFrequencyAndPeak(unittest.TestCase):
    def test_daily_rate_counts_current_month_only(self):
        history = [_ago(1), _ago(2), _ago(3), _ago(24 * 15)]  # last one is in May
        self.assertEqual(daily_test_rate(history, _NOW), 0.3)

    def test_daily_rate_empty(self):
        self.assertEqual(daily_test_rate([], _NOW), 0.0)

    def test_daily_rate_first_of_month(self):
        now = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
        history = [_at(now - timedelta(hours=h)) for h in range(3)]
        self.assertEqual(daily_test_rate(history, now), 3.0)

    def test_peak_hour(self):
        base = datetime(2026, 6, 1, tzinfo=timezone.utc)
        history = [_at(base.replace(hour=h)) for h in (9, 14, 14, 9, 20)]
        # 9 and 14 tie; the earlier hour wins
        self.assertEqual(peak_hour(history, timezone.utc), 9)

    def test_peak_hour_empty(self):
        self.assertIsNone(peak_hour([]))

    def test_group_by_hour(self):
        base = datetime(2026, 6, 1, tzinfo=timezone.utc)
        history = [_at(base.replace(hour=7), download=30.0), _at(base.replace(hour=7), download=50.0)]
        buckets = group_by_hour(history, timezone.utc)
        self.assertEqual(list(buckets), [7])
        self.assertEqual(buckets[7]["download"], [30.0, 50.0])


class TestMixedOffsets(unittest.TestCase):
    """Results stored under one UTC offset, read from another."""

    CENTRAL = timezone(timedelta(hours=-5))
    EAST = timezone(timedelta(hours=2))

    def test_month_follows_reader_zone(self):
        # 23:30 on 31 May at -05:00 is 06:30 on 1 June at +02:00
        late_may = _at(datetime(2026, 5, 31, 23, 30, tzinfo=self.CENTRAL))
        now = datetime(2026, 6, 10, 12, 0, tzinfo=self.EAST)
        self.assertEqual(daily_test_rate([late_may], now), 0.1)

    def test_month_boundary_the_other_way(self):
        # 00:30 on 1 June at +02:00 is still 31 May at -05:00
        early_june = _at(datetime(2026, 6, 1, 0, 30, tzinfo=self.EAST))
        now = datetime(2026, 6, 10, 12, 0, tzinfo=self.CENTRAL)
        self.assertEqual(daily_test_rate([early_june], now), 0.0)

    def test_hours_read_in_one_zone(self):
        history = [
            _at(datetime(2026, 6, 1, 9, 0, tzinfo=self.EAST)),
            _at(datetime(2026, 6, 1, 7, 0, tzinfo=timezone.utc)),
            _at(datetime(2026, 6, 1, 20, 0, tzinfo=timezone.utc)),
        ]
        self.assertEqual(peak_hour(history, timezone.utc), 7)
        self.assertEqual(sorted(group_by_hour(history, timezone.utc)), [7, 20])
        self.assertEqual(peak_hour(history, self.EAST), 9)

    def test_summary_peak_uses_now_zone(self):
        history = [_at(datetime(2026, 6, 1, 22, 0, tzinfo=timezone.utc))]
        s = summarize(history, Window.ALL, datetime(2026, 6, 2, 12, 0, tzinfo=self.EAST))
        self.assertEqual(s.peak_hour, 0)


class TestBestOf(unittest.TestCase):
    def test_best_of_each_metric(self):
        servers = [
            ServerResult("A", "https://a", ping=30, jitter=2, download_speed=80.0,
                         upload_speed=32.0, signal_quality=100),
            ServerResult("B", "https://b", ping=12, jitter=9, download_speed=60.0,
                         upload_speed=24.0, signal_quality=90),
        ]
        r = best_of(servers, consistency=75.0, timestamp=_NOW)
        self.assertEqual(r.ping, 12)
        self.assertEqual(r.jitter, 2)
        self.assertEqual(r.download_speed, 80.0)
        self.assertEqual(r.upload_speed, 32.0)
        self.assertEqual(r.signal_quality, 100)
        self.assertEqual(r.consistency, 75.0)
        self.assertEqual(len(r.servers), 2)

    def test_no_servers(self):
        self.assertIsNone(best_of([], consistency=100.0))


if __name__ == "__main__":
    unittest.main()
