import unittest

from livecandles.candles.aggregator import (
    aggregate,
    aggregate_in_groups,
    floor_to_window,
    regroup,
    should_open_new_window,
    window_candle,
    window_run,
)
from livecandles.models.market import Candle, Timeframe

ONE = Timeframe.ONE_MINUTE
THREE = Timeframe.THREE_MINUTE


def minute(t, o, h, l, c):
    return Candle(time=t, open=o, high=h, low=l, close=c)


class TestAggregate(unittest.TestCase):
    def setUp(self):
        self.c1 = minute(0, 10.0, 12.0, 9.0, 11.0)
        self.c2 = minute(60, 11.0, 15.0, 10.5, 14.0)
        self.c3 = minute(120, 14.0, 14.5, 8.5, 9.5)

    def test_ohlc_of_three(self):
        agg = aggregate([self.c1, self.c2, self.c3])

        self.assertEqual(agg.time, 0)
        self.assertEqual(agg.open, 10.0)
        self.assertEqual(agg.close, 9.5)
        self.assertEqual(agg.high, 15.0)
        self.assertEqual(agg.low, 8.5)

    def test_reaggregating_single_group_is_identity(self):
        agg = aggregate([self.c1, self.c2, self.c3])
        self.assertEqual(aggregate([agg]), agg)

    def test_empty_run_raises(self):
        with self.assertRaises(ValueError):
            aggregate([])

    def test_groups_keep_partial_tail(self):
        candles = [minute(60 * i, 10.0 + i, 11.0 + i, 9.0 + i, 10.5 + i) for i in range(5)]

        groups = aggregate_in_groups(candles, 3)

        self.assertEqual([g.time for g in groups], [0, 180])
        self.assertEqual(groups[1], aggregate(candles[3:]))

    def test_groups_span_gaps_positionally(self):
        candles = [minute(t, 1.0, 2.0, 0.5, 1.5) for t in (0, 60, 300, 360)]

        groups = aggregate_in_groups(candles, 3)

        self.assertEqual([g.time for g in groups], [0, 360])


class TestWindowClassifier(unittest.TestCase):
    def test_one_minute_same_window(self):
        self.assertFalse(should_open_new_window(125, 120, ONE))
        self.assertFalse(should_open_new_window(179, 120, ONE))

    def test_one_minute_new_window(self):
        self.assertTrue(should_open_new_window(180, 120, ONE))
        self.assertTrue(should_open_new_window(185, 120, ONE))

    def test_three_minute_compares_buckets(self):
        self.assertFalse(should_open_new_window(359, 180, THREE))
        self.assertTrue(should_open_new_window(360, 180, THREE))
        # 120 sits in bucket 0, 185 in bucket 1.
        self.assertTrue(should_open_new_window(185, 120, THREE))

    def test_three_minute_uses_minute_aligned_time(self):
        self.assertFalse(should_open_new_window(239, 200, THREE))

    def test_floor_to_window(self):
        self.assertEqual(floor_to_window(125, ONE), 120)
        self.assertEqual(floor_to_window(359, THREE), 180)
        self.assertEqual(floor_to_window(360, THREE), 360)


class TestRegroup(unittest.TestCase):
    def test_one_minute_is_passthrough(self):
        candles = [minute(0, 1, 1, 1, 1), minute(60, 1, 1, 1, 1)]
        self.assertEqual(regroup(candles, ONE), candles)

    def test_head_before_first_boundary_is_own_window(self):
        candles = [minute(t, 1.0, 2.0, 0.5, 1.5) for t in (60, 120, 180, 240, 300, 360)]

        out = regroup(candles, THREE)

        self.assertEqual([c.time for c in out], [0, 180, 360])
        self.assertEqual(out[0].open, candles[0].open)
        self.assertEqual(out[0].close, candles[1].close)

    def test_aligned_start_matches_positional_groups(self):
        candles = [minute(60 * i, 1.0 + i, 2.0 + i, 0.5 + i, 1.5 + i) for i in range(7)]
        self.assertEqual(regroup(candles, THREE), aggregate_in_groups(candles, 3))


class TestWindowRun(unittest.TestCase):
    def setUp(self):
        self.history = [minute(60 * i, 10.0, 11.0, 9.0, 10.0) for i in range(5)]

    def test_run_starts_at_boundary(self):
        run = window_run(self.history, 300, THREE)
        self.assertEqual([c.time for c in run], [180, 240])

    def test_forming_on_boundary_has_empty_run(self):
        self.assertEqual(window_run(self.history, 360, THREE), [])

    def test_gap_at_window_start(self):
        history = [minute(120, 1, 1, 1, 1), minute(240, 1, 1, 1, 1)]

        run = window_run(history, 300, THREE)

        self.assertEqual([c.time for c in run], [240])

    def test_window_candle_includes_forming(self):
        forming = minute(300, 10.0, 13.0, 8.0, 12.0)

        candle = window_candle(self.history, forming, THREE)

        self.assertEqual(candle.time, 180)
        self.assertEqual(candle.open, 10.0)
        self.assertEqual(candle.high, 13.0)
        self.assertEqual(candle.low, 8.0)
        self.assertEqual(candle.close, 12.0)

    def test_window_candle_realigns_after_gap(self):
        history = [minute(240, 5.0, 6.0, 4.0, 5.5)]
        forming = minute(300, 5.5, 7.0, 5.0, 6.5)

        candle = window_candle(history, forming, THREE)

        self.assertEqual(candle.time, 180)
        self.assertEqual(candle.open, 5.0)
        self.assertEqual(candle.close, 6.5)

    def test_one_minute_window_candle_is_forming(self):
        forming = minute(300, 1, 1, 1, 1)
        self.assertIs(window_candle(self.history, forming, ONE), forming)


if __name__ == "__main__":
    unittest.main()
