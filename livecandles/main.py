import asyncio
import logging

from fastapi import FastAPI

from livecandles.api.routes import router as api_router
from livecandles.jobs.symbol_refresher import symbol_refresh_loop
from livecandles.jobs.tick_ingest import tick_ingest_loop
from livecandles.state import controller, provider, settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(title="Live Candles API", version="0.1.0")
app.include_router(api_router)


@app.on_event("startup")
async def _startup():
    # ATM symbol refresher (reseeds the chart when the strike moves)
    asyncio.create_task(
        symbol_refresh_loop(
            provider=provider,
            controller=controller,
            interval_seconds=settings.symbol_refresh_seconds,
        )
    )

    # Tick ingest (live 1m/3m candles for the symbol on screen)
    asyncio.create_task(tick_ingest_loop(provider=provider, controller=controller))


@app.on_event("shutdown")
async def _shutdown():
    close = getattr(provider, "close", None)
    if callable(close):
        close()


@app.get("/health")
def health():
    return {
        "status": "ok",
        "app_env": settings.app_env,
        "provider_config": settings.provider,
        "provider_loaded": provider.__class__.__name__,
        "symbol": controller.active_symbol,
        "timeframe": controller.timeframe.value,
    }
