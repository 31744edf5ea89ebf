from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from livecandles.models.market import Timeframe

# IST (+05:30). A multiple of 180s, so shifting never moves a 1m/3m boundary.
DISPLAY_OFFSET_SECONDS = 5 * 3600 + 30 * 60


@dataclass(frozen=True)
class DisplayInstant:
    """
    A timestamp expressed in display time.

    epoch: epoch seconds shifted by the display offset. Chart libraries
           render epoch values as UTC, so candle times are stored shifted.
    hour/minute/second: calendar fields in the display timezone
    """
    epoch: int
    hour: int
    minute: int
    second: int


def to_display_time(epoch_seconds: float, offset_seconds: int = DISPLAY_OFFSET_SECONDS) -> DisplayInstant:
    """Convert raw epoch seconds (UTC) to display time. Pure."""
    raw = int(epoch_seconds // 1)
    local = datetime.fromtimestamp(raw, tz=timezone(timedelta(seconds=offset_seconds)))
    return DisplayInstant(
        epoch=raw + offset_seconds,
        hour=local.hour,
        minute=local.minute,
        second=local.second,
    )


def format_time_label(display_epoch: int) -> str:
    """HH:MM label for an already-shifted candle time (axis ticks, crosshair)."""
    return datetime.fromtimestamp(display_epoch, tz=timezone.utc).strftime("%H:%M")


def seconds_remaining(instant: DisplayInstant, timeframe: Timeframe) -> int:
    if timeframe is Timeframe.ONE_MINUTE:
        return 60 - instant.second
    return 180 - ((instant.minute % 3) * 60 + instant.second)


def time_remaining(instant: DisplayInstant, timeframe: Timeframe) -> str:
    """
    Countdown until the current window closes.

    "2m5s" style, or just "42s" when the minute part is zero.
    """
    total = seconds_remaining(instant, timeframe)
    minutes, seconds = divmod(total, 60)
    return f"{minutes}m{seconds}s" if minutes > 0 else f"{seconds}s"
