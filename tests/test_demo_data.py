import os
import sys
import unittest
from datetime import datetime, timedelta, timezone

import numpy as np

# Allow `import sharechart.*` when running from a source checkout.
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from sharechart.core.demo_data import demo_periods, generate_demo_ohlc
from sharechart.core.models import normalize_series
from sharechart.core.shapes import build_geometry


class DemoDataTests(unittest.TestCase):
    def setUp(self):
        self.now = datetime(2024, 3, 5, 14, 37, tzinfo=timezone.utc)
        self.rows = generate_demo_ohlc(25.0, 48, now=self.now, rng=np.random.default_rng(7))

    def test_envelope_and_volume(self):
        self.assertEqual(len(self.rows), 48)
        for row in self.rows:
            self.assertLessEqual(row["low"], min(row["open"], row["close"]))
            self.assertGreaterEqual(row["high"], max(row["open"], row["close"]))
            self.assertGreaterEqual(row["volume"], 50)
            self.assertLess(row["volume"], 550)

    def test_hourly_buckets_end_at_current_hour(self):
        series = normalize_series(self.rows)
        self.assertEqual(series[-1].period_start, datetime(2024, 3, 5, 14, tzinfo=timezone.utc))
        gaps = {b.period_start - a.period_start for a, b in zip(series, series[1:])}
        self.assertEqual(gaps, {timedelta(hours=1)})
        self.assertTrue(self.rows[0]["period_start"].endswith("Z"))

    def test_walk_is_continuous(self):
        self.assertEqual(self.rows[0]["open"], 25.0)
        for prev, row in zip(self.rows, self.rows[1:]):
            self.assertEqual(row["open"], prev["close"])

    def test_seeded_is_reproducible(self):
        again = generate_demo_ohlc(25.0, 48, now=self.now, rng=np.random.default_rng(7))
        self.assertEqual(again, self.rows)

    def test_renders(self):
        geometry = build_geometry(normalize_series(self.rows))
        self.assertEqual(len(geometry.candles), 48)

    def test_no_periods(self):
        self.assertEqual(generate_demo_ohlc(25.0, 0), [])

    def test_periods_per_timeframe(self):
        self.assertEqual(demo_periods("1w", 500), 168)
        self.assertEqual(demo_periods("1d", 500), 24)
        self.assertEqual(demo_periods("4h", 500), 24)
        self.assertEqual(demo_periods("1h", 500), 60)
        self.assertEqual(demo_periods("1w", 100), 100)


if __name__ == "__main__":
    unittest.main()
