from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List


class MarketDataProvider(ABC):
    """
    Provider contract (interface).

    Any provider must implement:
    - fetch_candles(): historical 1m bars via REST, ascending
    - fetch_atm_symbols(): the current ATM call/put symbols
    - stream_ticks(): live ticks (async iterator)
    """

    @abstractmethod
    def fetch_candles(self, symbol: str, limit: int) -> List[Dict]:
        raise NotImplementedError

    @abstractmethod
    def fetch_atm_symbols(self) -> Dict[str, str]:
        raise NotImplementedError

    @abstractmethod
    async def stream_ticks(self, symbols: List[str]) -> AsyncIterator[Dict]:
        raise NotImplementedError
