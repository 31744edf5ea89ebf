from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from livecandles.candles.clock import format_time_label
from livecandles.candles.series import SeriesUpdate, UpdateKind
from livecandles.models.market import Candle


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PresentationSink(ABC):
    """
    Where candle updates go to be drawn.

    Any sink must implement:
    - apply(): a full series replacement or a single candle upsert
    - show_error(): a user-visible message when chart data can't be loaded
    """

    @abstractmethod
    def apply(self, update: SeriesUpdate) -> None:
        raise NotImplementedError

    @abstractmethod
    def show_error(self, message: str) -> None:
        raise NotImplementedError


@dataclass
class ChartStore(PresentationSink):
    """
    In-memory chart state + freshness tracking.

    series[name]       -> candles drawn for "call" / "put" (latest N)
    active             -> which series is on screen
    countdown          -> title label of the active series ("1m42s")
    last_updated[name] -> when we last wrote to that series
    """
    max_history: int = 500
    series: Dict[str, List[Candle]] = field(default_factory=dict)
    last_updated: Dict[str, datetime] = field(default_factory=dict)
    active: Optional[str] = None
    timeframe: Optional[str] = None
    countdown: Optional[str] = None
    error: Optional[str] = None

    def touch(self, name: str) -> None:
        """Mark this series as updated right now."""
        self.last_updated[name] = utcnow()

    def apply(self, update: SeriesUpdate) -> None:
        name = update.series
        self.active = name
        self.timeframe = update.timeframe.value

        if update.kind is UpdateKind.REPLACE:
            self.replace_series(name, list(update.candles))
            self.error = None
        else:
            for candle in update.candles:
                self.upsert(name, candle)

        if update.countdown is not None:
            self.countdown = update.countdown

    def show_error(self, message: str) -> None:
        self.error = message

    def replace_series(self, name: str, candles: List[Candle]) -> None:
        self.series[name] = candles[-self.max_history:]
        self.touch(name)

    def upsert(self, name: str, candle: Candle) -> None:
        """Update the candle with the same time, or insert it in time order."""
        candles = self.series.setdefault(name, [])

        i = len(candles)
        while i > 0 and candles[i - 1].time > candle.time:
            i -= 1
        if i > 0 and candles[i - 1].time == candle.time:
            candles[i - 1] = candle
        else:
            candles.insert(i, candle)

        if len(candles) > self.max_history:
            del candles[:-self.max_history]

        self.touch(name)

    def get_series(self, name: str) -> List[Candle]:
        return self.series.get(name, [])

    def get_last_updated(self, name: str) -> Optional[datetime]:
        return self.last_updated.get(name)

    def is_fresh(self, name: str, max_age_seconds: int) -> bool:
        """
        Freshness check:
        - Must have some candles
        - last_updated must be within max_age_seconds
        """
        if not self.get_series(name):
            return False

        last = self.get_last_updated(name)
        if last is None:
            return False

        return (utcnow() - last) <= timedelta(seconds=max_age_seconds)

    def snapshot(self, max_age_seconds: int = 90) -> dict:
        name = self.active
        candles = self.get_series(name) if name else []
        last = self.get_last_updated(name) if name else None

        return {
            "series": name,
            "timeframe": self.timeframe,
            "countdown": self.countdown,
            "error": self.error,
            "loading": not candles,
            "fresh": self.is_fresh(name, max_age_seconds) if name else False,
            "last_updated": last.isoformat() if last else None,
            "candles": [
                dict(c.to_dict(), label=format_time_label(c.time)) for c in candles
            ],
        }
