from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class CandleOut(BaseModel):
    """One drawn candle. `label` is the HH:MM display time of `time`."""
    time: int
    open: float
    high: float
    low: float
    close: float
    label: str


class ChartSnapshot(BaseModel):
    """
    What the chart currently shows.

    series:
      "call" / "put", or None before any symbol was resolved

    loading:
      True while there are no candles (no history yet, or an empty seed)

    error:
      set when history for the active symbol couldn't be fetched
    """
    series: Optional[str] = None
    timeframe: Optional[str] = None
    countdown: Optional[str] = None
    error: Optional[str] = None
    loading: bool = True
    fresh: bool = False
    last_updated: Optional[str] = None
    candles: List[CandleOut] = []
