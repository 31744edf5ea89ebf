from __future__ import annotations

import asyncio
import logging
import traceback
from typing import Optional

from livecandles.candles.controller import ChartController
from livecandles.models.market import Tick
from livecandles.providers.base import MarketDataProvider

log = logging.getLogger("tick_ingest")


def to_tick(msg: dict) -> Optional[Tick]:
    """Provider tick dict -> Tick. None for malformed messages."""
    try:
        return Tick(
            symbol=str(msg["symbol"]),
            price=float(msg["price"]),
            ts=float(msg["ts"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


async def tick_ingest_loop(
    provider: MarketDataProvider,
    controller: ChartController,
    idle_seconds: float = 1.0,
) -> None:
    """
    Background loop:
    - subscribes provider.stream_ticks() to the controller's ATM symbols
    - converts tick dicts to Tick dataclass
    - feeds the controller (which updates the chart store)
    - resubscribes when the ATM symbols change or the stream fails
    """
    while True:
        symbols = controller.watched_symbols()
        if not symbols:
            await asyncio.sleep(idle_seconds)
            continue

        log.info("Streaming ticks symbols=%s", symbols)
        stream = provider.stream_ticks(symbols)
        resubscribe = False
        try:
            async for msg in stream:
                tick = to_tick(msg)
                if tick is not None:
                    controller.on_tick(tick)

                if controller.watched_symbols() != symbols:
                    resubscribe = True
                    break
        except Exception as e:
            # Keep loop alive even if the tick source fails, but log the error.
            log.error("Tick stream failed symbols=%s error=%s", symbols, repr(e))
            log.error(traceback.format_exc())
        finally:
            # Release the old subscription (WS socket) before opening a new one.
            aclose = getattr(stream, "aclose", None)
            if callable(aclose):
                await aclose()

        if not resubscribe:
            await asyncio.sleep(idle_seconds)
