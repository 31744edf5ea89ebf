from __future__ import annotations

import time

from fastapi import APIRouter, HTTPException, Query

from livecandles.models.chart import ChartSnapshot
from livecandles.models.market import Tick, Timeframe
from livecandles.state import controller, store

router = APIRouter()


@router.get("/chart", response_model=ChartSnapshot)
def chart():
    """
    Chart v1:
    - candles of the active series (call or put) at the active timeframe
    - countdown label from the last accepted tick
    - loading / error / freshness flags
    """
    return ChartSnapshot(**store.snapshot())


@router.get("/chart/countdown")
def chart_countdown():
    """Time left in the current window, by wall clock (for idle countdown display)."""
    return {"timeframe": controller.timeframe.value, "countdown": controller.countdown()}


@router.post("/chart/timeframe")
async def chart_timeframe(timeframe: str = Query(..., description="1m or 3m")):
    try:
        tf = Timeframe.parse(timeframe)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await controller.set_timeframe(tf)
    return {"ok": True, "timeframe": tf.value, "candles": len(store.get_series(controller.tab))}


@router.post("/chart/tab")
async def chart_tab(tab: str = Query(..., description="call or put")):
    try:
        await controller.set_tab(tab)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"ok": True, "tab": controller.tab, "symbol": controller.active_symbol}


@router.post("/dev/simulate_tick")
def dev_simulate_tick(price: float = Query(..., description="Tick price")):
    """
    Dev-only helper:
    Feeds ONE tick for the symbol on screen, stamped now.
    """
    symbol = controller.active_symbol
    if not symbol:
        raise HTTPException(status_code=409, detail="No active symbol yet")

    update = controller.on_tick(Tick(symbol=symbol, price=price, ts=time.time()))
    return {
        "ok": True,
        "accepted": update is not None,
        "new_window": bool(update and update.new_window),
        "countdown": update.countdown if update else None,
    }
