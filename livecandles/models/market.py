from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Timeframe(str, Enum):
    """Chart timeframe. The value is the label used by the API and config."""

    ONE_MINUTE = "1m"
    THREE_MINUTE = "3m"

    @property
    def seconds(self) -> int:
        return 60 if self is Timeframe.ONE_MINUTE else 180

    @property
    def minutes(self) -> int:
        return self.seconds // 60

    @classmethod
    def parse(cls, raw: str) -> "Timeframe":
        try:
            return cls(raw.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown timeframe '{raw}'. Expected: 1m, 3m") from None


@dataclass(frozen=True)
class Tick:
    """
    Tick = a single live price observation.

    symbol: option symbol the price belongs to
    price: last traded price
    ts: epoch seconds (UTC) of the observation

    price/ts are optional because feeds do send partial messages;
    the series drops those instead of failing.
    """
    symbol: str
    price: Optional[float]
    ts: Optional[float]

    def is_malformed(self) -> bool:
        return not self.price or not self.ts


@dataclass(frozen=True)
class Candle:
    """
    Candle (OHLC) for one timeframe window.

    time: window start in display-time epoch seconds
    open/high/low/close: prices during the window

    Candles are values. A forming candle is replaced on every tick,
    never mutated in place.
    """
    time: int
    open: float
    high: float
    low: float
    close: float

    @classmethod
    def opened_at(cls, time: int, open: float, price: float) -> "Candle":
        """
        New window: opens at the previous close, first trade at `price`.

        high/low span both open and price (not just price), so low <= open
        holds even when the market gapped away from the previous close.
        """
        return cls(
            time=time,
            open=open,
            high=max(open, price),
            low=min(open, price),
            close=price,
        )

    @classmethod
    def placeholder(cls) -> "Candle":
        """All-zero candle used while there is no data yet."""
        return cls(time=0, open=0.0, high=0.0, low=0.0, close=0.0)

    def is_placeholder(self) -> bool:
        return self.time == 0 and self.close == 0.0 and self.high == 0.0

    def updated(self, price: float) -> "Candle":
        """Return this candle with one more trade applied."""
        return Candle(
            time=self.time,
            open=self.open,
            high=max(self.high, price),
            low=min(self.low, price),
            close=price,
        )

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
        }
