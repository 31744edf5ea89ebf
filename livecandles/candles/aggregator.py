from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Sequence

from livecandles.models.market import Candle, Timeframe

log = logging.getLogger("candle_aggregator")


def floor_to_minute(ts: float) -> int:
    """Round epoch seconds down to the start of its minute."""
    return int(ts // 60) * 60


def floor_to_window(ts: float, timeframe: Timeframe) -> int:
    """
    Start of the timeframe window containing `ts`.

    Aligns to the minute first, then to the window, so a 3m boundary
    always coincides with a 1m boundary.
    """
    return floor_to_minute(ts) // timeframe.seconds * timeframe.seconds


def should_open_new_window(tick_ts: float, current_time: int, timeframe: Timeframe) -> bool:
    """True when a tick at `tick_ts` belongs to a later window than the candle at `current_time`."""
    minute = floor_to_minute(tick_ts)
    if timeframe is Timeframe.ONE_MINUTE:
        return minute > current_time
    return minute // timeframe.seconds > current_time // timeframe.seconds


def aggregate(candles: Sequence[Candle]) -> Candle:
    """
    Collapse an ordered run of candles into one.

    time/open come from the first candle, close from the last,
    high/low are the extremes of the run.
    """
    if not candles:
        raise ValueError("Cannot aggregate an empty candle run")

    first = candles[0]
    last = candles[-1]
    return Candle(
        time=first.time,
        open=first.open,
        high=max(c.high for c in candles),
        low=min(c.low for c in candles),
        close=last.close,
    )


def aggregate_in_groups(candles: Sequence[Candle], size: int) -> List[Candle]:
    """
    Chunk `candles` positionally into groups of `size` and aggregate each.

    A trailing group with fewer than `size` candles is still aggregated.
    Gaps in the input are not filled: a group spans whatever candles
    sit next to each other.
    """
    return [aggregate(candles[i:i + size]) for i in range(0, len(candles), size)]


def regroup(candles: Sequence[Candle], timeframe: Timeframe) -> List[Candle]:
    """
    Derive the `timeframe` series from 1m candles.

    Candles before the first window boundary form their own (partial)
    window, the rest is grouped positionally.
    """
    if timeframe is Timeframe.ONE_MINUTE or not candles:
        return list(candles)

    size = timeframe.minutes
    first_start = floor_to_window(candles[0].time, timeframe)
    head_end = 0
    if candles[0].time != first_start:
        boundary = first_start + timeframe.seconds
        while head_end < len(candles) and candles[head_end].time < boundary:
            head_end += 1

    out: List[Candle] = []
    if head_end:
        out.append(replace(aggregate(candles[:head_end]), time=first_start))
    out.extend(aggregate_in_groups(candles[head_end:], size))
    return out


def window_run(history: Sequence[Candle], forming_time: int, timeframe: Timeframe) -> List[Candle]:
    """
    Committed 1m candles in the same window as the forming candle.

    Scans the tail of history backwards until it reaches the candle sitting
    on the window boundary. A window holds at most `minutes - 1` committed
    candles next to the forming one.
    """
    start = floor_to_window(forming_time, timeframe)
    if forming_time == start:
        return []

    run: List[Candle] = []
    for candle in reversed(history[-(timeframe.minutes - 1):]):
        if candle.time < start:
            break
        run.append(candle)
        if candle.time == start:
            break
    run.reverse()

    if not run or run[0].time != start:
        # Missing minutes at the window start; aggregate what exists.
        log.debug(
            "No %s boundary candle at %s, aggregating %d in-window candle(s)",
            timeframe.value,
            start,
            len(run),
        )
    return run


def window_candle(history: Sequence[Candle], forming: Candle, timeframe: Timeframe) -> Candle:
    """Live candle for the window the forming 1m candle belongs to."""
    if timeframe is Timeframe.ONE_MINUTE:
        return forming
    run = window_run(history, forming.time, timeframe)
    candle = aggregate(run + [forming])
    return replace(candle, time=floor_to_window(forming.time, timeframe))
