from livecandles.config import get_settings
from livecandles.providers.base import MarketDataProvider
from livecandles.providers.options import OptionsApiProvider


def get_provider() -> MarketDataProvider:
    """
    Provider loader / factory.

    Reads PROVIDER from config and returns an instance of the selected provider.
    This is the single place that knows about concrete providers.
    """
    settings = get_settings()
    provider_name = settings.provider.strip().upper()

    if provider_name == "OPTIONS":
        return OptionsApiProvider(
            base_url=settings.options_api_base_url,
            history_path=settings.history_path,
            tick_ws_url=settings.tick_ws_url,
            timeout_seconds=settings.http_timeout_seconds,
            poll_interval_seconds=settings.poll_interval_seconds,
        )

    raise ValueError(f"Unknown PROVIDER='{settings.provider}'. Expected: OPTIONS")
