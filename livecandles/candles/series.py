from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from livecandles.candles.aggregator import (
    floor_to_minute,
    regroup,
    should_open_new_window,
    window_candle,
    window_run,
)
from livecandles.candles.clock import DISPLAY_OFFSET_SECONDS, time_remaining, to_display_time
from livecandles.candles.filters import DEFAULT_DEVIATION_THRESHOLD, is_outlier
from livecandles.models.market import Candle, Tick, Timeframe

log = logging.getLogger("live_series")

Bar = Union[Candle, Mapping]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    UNINITIALIZED = "uninitialized"
    SEEDING = "seeding"
    LIVE = "live"


class UpdateKind(str, Enum):
    REPLACE = "replace"  # full series (seed / timeframe switch)
    UPSERT = "upsert"    # one candle, matched by time


@dataclass(frozen=True)
class SeriesUpdate:
    """What the presentation side needs to redraw after one event."""
    kind: UpdateKind
    series: str
    timeframe: Timeframe
    candles: Tuple[Candle, ...]
    countdown: Optional[str] = None
    new_window: bool = False


class LiveSeries:
    """
    Live candle state for one symbol.

    history  -> committed 1m candles (append-only, the only stored data)
    forming  -> the 1m candle still being built
    current  -> candle shown for the active timeframe
                (the forming candle for 1m, derived from history for 3m)

    Every accepted tick goes through `on_tick`, which returns the update
    to hand to the presentation sink (or None when the tick was dropped).
    """

    def __init__(
        self,
        symbol: str,
        timeframe: Timeframe = Timeframe.THREE_MINUTE,
        name: str = "call",
        threshold: float = DEFAULT_DEVIATION_THRESHOLD,
        offset_seconds: int = DISPLAY_OFFSET_SECONDS,
    ):
        self.symbol = symbol
        self.timeframe = timeframe
        self.name = name
        self.threshold = threshold
        self.offset_seconds = offset_seconds

        self.phase = Phase.UNINITIALIZED
        self.last_update: Optional[datetime] = None
        self._history: List[Candle] = []
        self._forming: Optional[Candle] = None
        self._current = Candle.placeholder()

    # -------------------------
    # Read-only views
    # -------------------------
    @property
    def history(self) -> Tuple[Candle, ...]:
        return tuple(self._history)

    @property
    def forming(self) -> Optional[Candle]:
        return self._forming

    @property
    def current(self) -> Candle:
        return self._current

    @property
    def last_close(self) -> float:
        return self._forming.close if self._forming is not None else 0.0

    def candles(self) -> List[Candle]:
        """Full series for the active timeframe, current candle last."""
        if self._forming is None:
            return []
        if self.timeframe is Timeframe.ONE_MINUTE:
            return self._history + [self._forming]

        run = window_run(self._history, self._forming.time, self.timeframe)
        committed = self._history[:len(self._history) - len(run)]
        return regroup(committed, self.timeframe) + [self._current]

    # -------------------------
    # Seeding
    # -------------------------
    def begin_seeding(self) -> None:
        self.phase = Phase.SEEDING

    def seed(self, bars: Iterable[Bar]) -> SeriesUpdate:
        """
        Load historical 1m bars (raw epoch times, ascending) and go live.

        Bars, dicts or Candles alike, carry raw UTC epoch times; they are
        shifted to display time here. Do not pass candles taken from a
        live series back in, they would be shifted twice.

        The newest bar becomes the forming candle: it is usually the minute
        that is still trading. An empty seed goes live on a placeholder.
        """
        self.phase = Phase.SEEDING
        history: List[Candle] = []
        for bar in bars:
            candle = self._normalize(bar)
            if history and candle.time <= history[-1].time:
                log.debug("Dropping out-of-order bar symbol=%s time=%s", self.symbol, candle.time)
                continue
            history.append(candle)

        self._forming = history.pop() if history else None
        self._history = history
        self.last_update = utcnow()
        return self._go_live()

    def set_timeframe(self, timeframe: Timeframe) -> SeriesUpdate:
        """Switch the view. History and the forming candle are kept as they are."""
        self.phase = Phase.SEEDING
        self.timeframe = timeframe
        return self._go_live()

    def _go_live(self) -> SeriesUpdate:
        if self._forming is None:
            self._current = Candle.placeholder()
        else:
            self._current = window_candle(self._history, self._forming, self.timeframe)
        self.phase = Phase.LIVE
        return SeriesUpdate(
            kind=UpdateKind.REPLACE,
            series=self.name,
            timeframe=self.timeframe,
            candles=tuple(self.candles()),
        )

    def _normalize(self, bar: Bar) -> Candle:
        if isinstance(bar, Candle):
            raw = bar
        else:
            raw = Candle(
                time=int(bar["time"]),
                open=float(bar["open"]),
                high=float(bar["high"]),
                low=float(bar["low"]),
                close=float(bar["close"]),
            )
        display = to_display_time(raw.time, self.offset_seconds)
        return Candle(
            time=floor_to_minute(display.epoch),
            open=raw.open,
            high=raw.high,
            low=raw.low,
            close=raw.close,
        )

    # -------------------------
    # Live ticks
    # -------------------------
    def on_tick(self, tick: Tick) -> Optional[SeriesUpdate]:
        if self.phase is not Phase.LIVE:
            log.debug("Dropping tick while %s symbol=%s", self.phase.value, self.symbol)
            return None

        if tick.is_malformed():
            return None

        price = float(tick.price)
        if is_outlier(price, self.last_close, self.threshold):
            log.debug(
                "Ignoring price deviation symbol=%s price=%s last_close=%s",
                self.symbol,
                price,
                self.last_close,
            )
            return None

        instant = to_display_time(tick.ts, self.offset_seconds)
        if self._forming is not None and instant.epoch < self._forming.time:
            log.debug("Dropping stale tick symbol=%s ts=%s", self.symbol, tick.ts)
            return None

        open_new = self._forming is None or should_open_new_window(
            instant.epoch, self._forming.time, Timeframe.ONE_MINUTE
        )
        new_window = self._apply(price, instant.epoch, open_new)

        self.last_update = utcnow()
        return SeriesUpdate(
            kind=UpdateKind.UPSERT,
            series=self.name,
            timeframe=self.timeframe,
            candles=(self._current,),
            countdown=time_remaining(instant, self.timeframe),
            new_window=new_window,
        )

    def _apply(self, price: float, ts: int, open_new: bool) -> bool:
        """
        Single transition for an accepted tick.

        open_new: the 1m window rolled, so the forming candle is committed
        to history and a new one opens at its close.
        Returns whether the active timeframe started a new window.
        """
        previous = self._forming
        if not open_new:
            self._forming = previous.updated(price)
        elif previous is None:
            self._forming = Candle.opened_at(floor_to_minute(ts), open=price, price=price)
        else:
            self._history.append(previous)
            self._forming = Candle.opened_at(floor_to_minute(ts), open=previous.close, price=price)

        if self.timeframe is Timeframe.ONE_MINUTE:
            new_window = open_new
        else:
            new_window = self._current.is_placeholder() or should_open_new_window(
                ts, self._current.time, self.timeframe
            )

        self._current = window_candle(self._history, self._forming, self.timeframe)
        return new_window
