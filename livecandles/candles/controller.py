from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, List, Optional

from livecandles.candles.clock import DISPLAY_OFFSET_SECONDS, time_remaining, to_display_time
from livecandles.candles.filters import DEFAULT_DEVIATION_THRESHOLD
from livecandles.candles.series import LiveSeries, Phase, SeriesUpdate
from livecandles.candles.store import PresentationSink
from livecandles.models.market import Tick, Timeframe
from livecandles.providers.base import MarketDataProvider

log = logging.getLogger("chart_controller")

TABS = ("call", "put")


class ChartController:
    """
    Single owner of the chart's live state.

    Serializes the four chart events on the event loop:
    - historical data arrived (end of reseed)
    - tick arrived (on_tick)
    - timeframe changed (set_timeframe)
    - symbol / tab changed (set_symbols, set_tab)

    Each reseed bumps a generation counter. A fetch that completes after a
    newer reseed started is discarded.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        sink: PresentationSink,
        timeframe: Timeframe = Timeframe.THREE_MINUTE,
        history_limit: int = 375,
        threshold: float = DEFAULT_DEVIATION_THRESHOLD,
        offset_seconds: int = DISPLAY_OFFSET_SECONDS,
    ):
        self.provider = provider
        self.sink = sink
        self.timeframe = timeframe
        self.history_limit = history_limit
        self.threshold = threshold
        self.offset_seconds = offset_seconds

        self.symbols: Dict[str, Optional[str]] = {tab: None for tab in TABS}
        self.tab = "call"
        self.series: Optional[LiveSeries] = None
        self._generation = 0

    @property
    def active_symbol(self) -> Optional[str]:
        return self.symbols[self.tab]

    def watched_symbols(self) -> List[str]:
        return [s for s in self.symbols.values() if s]

    # -------------------------
    # Control events
    # -------------------------
    async def set_symbols(self, call: Optional[str], put: Optional[str]) -> bool:
        """
        Store the ATM symbols. Reseeds when the symbol on screen changed,
        or when its last seed never went live (a failed fetch is retried).
        """
        before = self.active_symbol
        self.symbols = {"call": call, "put": put}
        if self.active_symbol == before and self._is_live():
            return False

        log.info("ATM symbols call=%s put=%s", call, put)
        await self.reseed()
        return True

    async def set_tab(self, tab: str) -> None:
        tab = tab.strip().lower()
        if tab not in TABS:
            raise ValueError(f"Unknown tab '{tab}'. Expected: call, put")
        if tab == self.tab and self._is_live():
            return
        self.tab = tab
        await self.reseed()

    async def set_timeframe(self, timeframe: Timeframe) -> None:
        self.timeframe = timeframe
        # Live series already holds the 1m history; re-derive without a fetch.
        if self._is_live():
            self._publish(self.series.set_timeframe(timeframe))
            return

        await self.reseed()

    async def reseed(self) -> Optional[LiveSeries]:
        """
        Replace the live series with one seeded from fresh history.

        Returns the new series, or None if it was superseded while the
        fetch was outstanding (or there is no symbol to show).
        """
        self._generation += 1
        generation = self._generation

        symbol = self.active_symbol
        if not symbol:
            self.series = None
            return None

        series = LiveSeries(
            symbol=symbol,
            timeframe=self.timeframe,
            name=self.tab,
            threshold=self.threshold,
            offset_seconds=self.offset_seconds,
        )
        series.begin_seeding()
        self.series = series

        log.info("Fetching historical data for %s...", symbol)
        try:
            bars = await asyncio.to_thread(self.provider.fetch_candles, symbol, self.history_limit)
        except Exception as e:
            log.error("Error initializing chart for %s: %s", symbol, repr(e))
            if generation == self._generation:
                self.sink.show_error(f"Failed to initialize chart data for {symbol}")
            return None

        if generation != self._generation:
            log.debug("Discarding stale seed symbol=%s generation=%d", symbol, generation)
            return None

        self._publish(series.seed(bars))
        log.info("Chart series created for %s candles=%d", symbol, len(series.candles()))
        return series

    # -------------------------
    # Ticks
    # -------------------------
    def on_tick(self, tick: Tick) -> Optional[SeriesUpdate]:
        """Intake for live ticks. Only the symbol on screen is aggregated."""
        series = self.series
        if series is None or tick.symbol != series.symbol:
            return None

        update = series.on_tick(tick)
        if update is not None:
            self._publish(update)
        return update

    def countdown(self, now: Optional[float] = None) -> str:
        instant = to_display_time(time.time() if now is None else now, self.offset_seconds)
        return time_remaining(instant, self.timeframe)

    def _is_live(self) -> bool:
        """False while there is no series or its seed is pending or failed."""
        return self.series is not None and self.series.phase is Phase.LIVE

    def _publish(self, update: SeriesUpdate) -> None:
        self.sink.apply(update)
