from __future__ import annotations

import asyncio
import logging
import traceback

from livecandles.candles.controller import ChartController
from livecandles.providers.base import MarketDataProvider


async def refresh_symbols(provider: MarketDataProvider, controller: ChartController) -> bool:
    """Fetch the ATM pair once. True when the chart was reseeded."""
    symbols = await asyncio.to_thread(provider.fetch_atm_symbols)
    return await controller.set_symbols(symbols["call"], symbols["put"])


async def symbol_refresh_loop(
    provider: MarketDataProvider,
    controller: ChartController,
    interval_seconds: float = 60.0,
) -> None:
    """
    Background loop:
    periodically re-resolve the ATM call/put symbols; a new ATM strike
    reseeds the chart from fresh history.
    """
    log = logging.getLogger("symbol_refresher")

    while True:
        try:
            await refresh_symbols(provider, controller)
        except Exception as e:
            # Keep loop alive even if the backend temporarily fails, but log the error.
            log.error("ATM symbol refresh failed error=%s", repr(e))
            log.error(traceback.format_exc())

        await asyncio.sleep(interval_seconds)
