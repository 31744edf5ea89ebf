# livecandles/config.py
import os
from dataclasses import dataclass
from dotenv import load_dotenv

from livecandles.models.market import Timeframe

# Loads variables from a local .env file into environment variables (dev only).
load_dotenv()


@dataclass(frozen=True)
class Settings:
    # App config
    app_env: str
    log_level: str
    provider: str

    # Options backend
    options_api_base_url: str
    history_path: str
    tick_ws_url: str
    http_timeout_seconds: float
    poll_interval_seconds: float
    symbol_refresh_seconds: float

    # Chart
    history_limit: int
    default_timeframe: Timeframe
    deviation_threshold: float
    display_utc_offset_minutes: int
    max_history: int


def _number(name: str, default: str, cast=float):
    raw = os.getenv(name, default).strip()
    try:
        return cast(raw)
    except ValueError:
        raise RuntimeError(f"{name}={raw!r} is not a valid number") from None


def get_settings() -> Settings:
    """
    Reads env vars and returns a Settings object.
    """
    threshold = _number("DEVIATION_THRESHOLD", "0.10")
    if threshold <= 0:
        raise RuntimeError("DEVIATION_THRESHOLD must be positive")

    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        provider=os.getenv("PROVIDER", "OPTIONS"),
        options_api_base_url=os.getenv("OPTIONS_API_BASE_URL", "http://localhost:8090").rstrip("/"),
        history_path=os.getenv("HISTORY_PATH", "/api/historicalData/{symbol}"),
        tick_ws_url=os.getenv("TICK_WS_URL", "").strip(),
        http_timeout_seconds=_number("HTTP_TIMEOUT_SECONDS", "20"),
        poll_interval_seconds=_number("POLL_INTERVAL_SECONDS", "1"),
        symbol_refresh_seconds=_number("SYMBOL_REFRESH_SECONDS", "60"),
        history_limit=_number("HISTORY_LIMIT", "375", int),
        default_timeframe=Timeframe.parse(os.getenv("DEFAULT_TIMEFRAME", "3m")),
        deviation_threshold=threshold,
        display_utc_offset_minutes=_number("DISPLAY_UTC_OFFSET_MINUTES", "330", int),
        max_history=_number("MAX_HISTORY", "500", int),
    )
