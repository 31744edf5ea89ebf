from __future__ import annotations

import random
import time

from livecandles.candles.clock import format_time_label
from livecandles.candles.series import LiveSeries
from livecandles.models.market import Tick, Timeframe


def run(symbol: str = "NIFTY24D1924000CE", seconds: int = 420, timeframe: str = "3m") -> None:
    """
    Generates fake ticks for `seconds` seconds and feeds them into a LiveSeries.

    - We simulate 1 tick per second.
    - Price does a random walk (moves up/down a bit each tick).
    - Every few ticks a bad print (+25%) is sent; the deviation filter drops it.
    - When a tick opens a new window we print the candle it opened.
    """
    series = LiveSeries(symbol=symbol, timeframe=Timeframe.parse(timeframe))

    # Start at the current minute boundary so candles look clean.
    ts = int(time.time()) // 60 * 60
    price = 100.0

    # Seed with 5 minutes of flat history, like the REST bootstrap would.
    series.seed(
        {"time": ts - 60 * i, "open": price, "high": price, "low": price, "close": price}
        for i in range(5, 0, -1)
    )

    print(f"Simulating ticks for {symbol} ({timeframe}) for {seconds} seconds...\n")

    dropped = 0
    for i in range(seconds):
        price += random.uniform(-0.2, 0.2)
        tick_price = price * 1.25 if i % 97 == 96 else price

        update = series.on_tick(Tick(symbol=symbol, price=round(tick_price, 2), ts=ts))
        if update is None:
            dropped += 1
        elif update.new_window:
            c = update.candles[0]
            print(
                f"[NEW {update.timeframe.value}] {format_time_label(c.time)} "
                f"O={c.open} H={c.high} L={c.low} C={c.close} ({update.countdown} left)"
            )

        ts += 1

    print(f"\nDone.")
    print(f"Committed 1m candles: {len(series.history)}")
    print(f"{timeframe} candles on chart: {len(series.candles())}")
    print(f"Dropped ticks: {dropped}")


if __name__ == "__main__":
    run()
