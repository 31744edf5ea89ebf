import asyncio
import threading
import unittest

from livecandles.candles.controller import ChartController
from livecandles.candles.series import Phase
from livecandles.candles.store import ChartStore
from livecandles.models.market import Tick, Timeframe
from livecandles.providers.base import MarketDataProvider


def flat_bars(price, count=5):
    return [
        {"time": 60 * i, "open": price, "high": price, "low": price, "close": price}
        for i in range(count)
    ]


class FakeProvider(MarketDataProvider):
    def __init__(self, bars, gates=None, failing=(), fail_once=()):
        self.bars = bars
        self.gates = gates or {}
        self.failing = set(failing)
        self.fail_once = set(fail_once)
        self.calls = []

    def fetch_candles(self, symbol, limit):
        self.calls.append(symbol)
        gate = self.gates.get(symbol)
        if gate is not None:
            gate.wait(timeout=5)
        if symbol in self.failing:
            raise RuntimeError("backend down")
        if symbol in self.fail_once:
            self.fail_once.discard(symbol)
            raise RuntimeError("backend down")
        return list(self.bars.get(symbol, []))

    def fetch_atm_symbols(self):
        return {"call": "CE1", "put": "PE1"}

    async def stream_ticks(self, symbols):
        for _ in ():
            yield {}


class TestChartController(unittest.IsolatedAsyncioTestCase):
    def make(self, provider, timeframe=Timeframe.ONE_MINUTE):
        self.store = ChartStore()
        return ChartController(provider, self.store, timeframe=timeframe, offset_seconds=0)

    async def test_symbols_seed_active_series(self):
        ctrl = self.make(FakeProvider({"CE1": flat_bars(100.0)}))

        changed = await ctrl.set_symbols("CE1", "PE1")

        self.assertTrue(changed)
        self.assertIs(ctrl.series.phase, Phase.LIVE)
        self.assertEqual(len(self.store.get_series("call")), 5)
        self.assertEqual(ctrl.watched_symbols(), ["CE1", "PE1"])

    async def test_same_symbols_do_not_reseed(self):
        provider = FakeProvider({"CE1": flat_bars(100.0)})
        ctrl = self.make(provider)
        await ctrl.set_symbols("CE1", "PE1")

        changed = await ctrl.set_symbols("CE1", "PE2")

        self.assertFalse(changed)
        self.assertEqual(provider.calls, ["CE1"])

    async def test_tick_flows_to_store(self):
        ctrl = self.make(FakeProvider({"CE1": flat_bars(100.0)}))
        await ctrl.set_symbols("CE1", "PE1")

        update = ctrl.on_tick(Tick(symbol="CE1", price=101.0, ts=250))

        self.assertIsNotNone(update)
        self.assertEqual(self.store.get_series("call")[-1].close, 101.0)
        self.assertEqual(self.store.countdown, "50s")

    async def test_tick_for_other_symbol_ignored(self):
        ctrl = self.make(FakeProvider({"CE1": flat_bars(100.0)}))
        await ctrl.set_symbols("CE1", "PE1")

        self.assertIsNone(ctrl.on_tick(Tick(symbol="PE1", price=50.0, ts=250)))

    async def test_tab_switch_reseeds_put(self):
        ctrl = self.make(FakeProvider({"CE1": flat_bars(100.0), "PE1": flat_bars(80.0, 3)}))
        await ctrl.set_symbols("CE1", "PE1")

        await ctrl.set_tab("put")

        self.assertEqual(ctrl.series.symbol, "PE1")
        self.assertEqual(self.store.active, "put")
        self.assertEqual(len(self.store.get_series("put")), 3)

    async def test_unknown_tab(self):
        ctrl = self.make(FakeProvider({}))
        with self.assertRaises(ValueError):
            await ctrl.set_tab("straddle")

    async def test_timeframe_switch_rederives_without_fetch(self):
        provider = FakeProvider({"CE1": flat_bars(100.0)})
        ctrl = self.make(provider)
        await ctrl.set_symbols("CE1", "PE1")

        await ctrl.set_timeframe(Timeframe.THREE_MINUTE)

        self.assertEqual(provider.calls, ["CE1"])
        self.assertEqual([c.time for c in self.store.get_series("call")], [0, 180])
        self.assertEqual(self.store.timeframe, "3m")

    async def test_stale_seed_discarded(self):
        gate = threading.Event()
        provider = FakeProvider(
            {"CE1": flat_bars(100.0), "CE2": flat_bars(200.0, 2)},
            gates={"CE1": gate},
        )
        ctrl = self.make(provider)

        first = asyncio.create_task(ctrl.set_symbols("CE1", "PE1"))
        await asyncio.sleep(0.05)
        self.assertIs(ctrl.series.phase, Phase.SEEDING)
        # Ticks for the series being replaced are dropped.
        self.assertIsNone(ctrl.on_tick(Tick(symbol="CE1", price=100.0, ts=250)))

        await ctrl.set_symbols("CE2", "PE1")
        gate.set()
        await first

        self.assertEqual(ctrl.series.symbol, "CE2")
        self.assertEqual(len(self.store.get_series("call")), 2)
        self.assertEqual(self.store.get_series("call")[-1].close, 200.0)

    async def test_fetch_failure_sets_error(self):
        ctrl = self.make(FakeProvider({}, failing=["CE1"]))

        await ctrl.set_symbols("CE1", "PE1")

        self.assertEqual(self.store.error, "Failed to initialize chart data for CE1")
        self.assertEqual(self.store.get_series("call"), [])

    async def test_failed_seed_retried_on_next_refresh(self):
        provider = FakeProvider({"CE1": flat_bars(100.0)}, fail_once=["CE1"])
        ctrl = self.make(provider)
        await ctrl.set_symbols("CE1", "PE1")
        self.assertIs(ctrl.series.phase, Phase.SEEDING)

        changed = await ctrl.set_symbols("CE1", "PE1")

        self.assertTrue(changed)
        self.assertEqual(provider.calls, ["CE1", "CE1"])
        self.assertIs(ctrl.series.phase, Phase.LIVE)
        self.assertIsNone(self.store.error)
        self.assertIsNotNone(ctrl.on_tick(Tick(symbol="CE1", price=101.0, ts=250)))

    async def test_failed_seed_retried_on_same_tab(self):
        provider = FakeProvider({"CE1": flat_bars(100.0)}, fail_once=["CE1"])
        ctrl = self.make(provider)
        await ctrl.set_symbols("CE1", "PE1")

        await ctrl.set_tab("call")

        self.assertEqual(provider.calls, ["CE1", "CE1"])
        self.assertIs(ctrl.series.phase, Phase.LIVE)

    async def test_countdown(self):
        ctrl = self.make(FakeProvider({}), timeframe=Timeframe.THREE_MINUTE)
        self.assertEqual(ctrl.countdown(now=80), "1m40s")


if __name__ == "__main__":
    unittest.main()
