from livecandles.candles.controller import ChartController
from livecandles.candles.store import ChartStore
from livecandles.config import get_settings
from livecandles.providers.loader import get_provider

settings = get_settings()

# Global in-memory chart state for the running API process
store = ChartStore(max_history=settings.max_history)

provider = get_provider()

# Controller that owns the live series and writes into the store
controller = ChartController(
    provider=provider,
    sink=store,
    timeframe=settings.default_timeframe,
    history_limit=settings.history_limit,
    threshold=settings.deviation_threshold,
    offset_seconds=settings.display_utc_offset_minutes * 60,
)
