from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

import httpx
import websockets
from websockets.exceptions import WebSocketException

log = logging.getLogger("options_provider")


def _epoch_seconds(ts_raw: Any) -> float:
    """
    Converts a timestamp to epoch seconds (UTC).
    Handles:
      - epoch seconds/millis (numbers or numeric strings)
      - "YYYY-MM-DD HH:MM:SS"
      - ISO strings
    """
    if isinstance(ts_raw, str) and ts_raw.strip().replace(".", "", 1).isdigit():
        ts_raw = float(ts_raw)

    if isinstance(ts_raw, (int, float)):
        if ts_raw > 1_000_000_000_000:  # millis
            return ts_raw / 1000.0
        return float(ts_raw)

    s = str(ts_raw).strip().replace(" ", "T")
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


class OptionsApiProvider:
    """
    Options backend provider (REST + optional WS).

    REST:
    - ATM call/put symbols
    - last prices for the ATM pair
    - 1m historical bars per symbol

    Ticks:
    - WS stream when a tick URL is configured, otherwise REST polling
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8090",
        history_path: str = "/api/historicalData/{symbol}",
        tick_ws_url: str = "",
        timeout_seconds: float = 20.0,
        poll_interval_seconds: float = 1.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.history_path = history_path
        self.tick_ws_url = tick_ws_url
        self.poll_interval_seconds = poll_interval_seconds
        self._client = client or httpx.Client(timeout=timeout_seconds)

    # -------------------------
    # Public interface used by the app
    # -------------------------
    def fetch_atm_symbols(self) -> dict[str, str]:
        """
        GET {base_url}/api/atmSymbols -> {"atmCall": "...", "atmPut": "..."}
        Returned as {"call": ..., "put": ...}.
        """
        resp = self._client.get(f"{self.base_url}/api/atmSymbols")
        resp.raise_for_status()

        data = resp.json()
        if not isinstance(data, dict) or not data.get("atmCall") or not data.get("atmPut"):
            raise ValueError(f"Unexpected atmSymbols payload: {data!r}")
        return {"call": str(data["atmCall"]), "put": str(data["atmPut"])}

    def fetch_prices(self, symbols: list[str]) -> list[dict]:
        """
        GET {base_url}/api/atmPrice/{sym1},{sym2}

        Payload is either {symbol: price} or {symbol: {"price": p, "tt": epoch}}.
        Returns tick dicts: {"symbol": ..., "price": ..., "ts": ...}
        """
        resp = self._client.get(f"{self.base_url}/api/atmPrice/{','.join(symbols)}")
        resp.raise_for_status()

        data = resp.json()
        if not isinstance(data, dict):
            log.warning("Unexpected atmPrice payload type=%s", type(data))
            return []

        now = time.time()
        out: list[dict] = []
        for symbol, value in data.items():
            if isinstance(value, dict):
                price = value.get("price") or value.get("ltp")
                ts_raw = value.get("tt") or value.get("ts")
            else:
                price, ts_raw = value, None

            if price is None:
                continue

            try:
                out.append(
                    {
                        "symbol": symbol,
                        "price": float(price),
                        "ts": _epoch_seconds(ts_raw) if ts_raw else now,
                    }
                )
            except (TypeError, ValueError):
                continue
        return out

    def fetch_candles(self, symbol: str, limit: int = 375) -> list[dict]:
        """
        Returns 1m bars as list[dict], ascending:
          {"time": epoch seconds, "open": float, "high": float, "low": float, "close": float}
        """
        url = self.base_url + self.history_path.format(symbol=symbol)
        resp = self._client.get(url)
        resp.raise_for_status()

        data = resp.json()
        if isinstance(data, dict) and "data" in data:
            data = data["data"]
        if not isinstance(data, list):
            log.warning("Unexpected history payload symbol=%s type=%s", symbol, type(data))
            return []

        out: list[dict] = []
        for row in data:
            if not isinstance(row, dict):
                continue

            # Field names can vary; handle common variants
            ts_raw = row.get("time") or row.get("timestamp") or row.get("datetime")
            o = row.get("open")
            h = row.get("high")
            l = row.get("low")
            c = row.get("close")

            # Skip partial/invalid rows (prevents float(None) crashes)
            if ts_raw is None or o is None or h is None or l is None or c is None:
                continue

            try:
                out.append(
                    {
                        "time": int(_epoch_seconds(ts_raw)),
                        "open": float(o),
                        "high": float(h),
                        "low": float(l),
                        "close": float(c),
                    }
                )
            except (TypeError, ValueError):
                continue

        out.sort(key=lambda x: x["time"])
        if limit and len(out) > limit:
            out = out[-limit:]
        return out

    async def stream_ticks(self, symbols: list[str]) -> AsyncIterator[dict]:
        """
        Yields ticks {"symbol": ..., "price": ..., "ts": ...} for `symbols`.
        """
        if self.tick_ws_url:
            async for tick in self._stream_ws(symbols):
                yield tick
            return

        while True:
            try:
                ticks = await asyncio.to_thread(self.fetch_prices, symbols)
            except (httpx.HTTPError, ValueError) as e:
                # ValueError: non-JSON body (gateway error pages)
                log.warning("Price poll failed symbols=%s error=%s", symbols, e)
                ticks = []

            for tick in ticks:
                yield tick

            await asyncio.sleep(self.poll_interval_seconds)

    def close(self) -> None:
        try:
            self._client.close()
        except Exception:
            pass

    # -------------------------
    # WS
    # -------------------------
    async def _stream_ws(self, symbols: list[str]) -> AsyncIterator[dict]:
        backoff = 1.0

        while True:
            try:
                async with websockets.connect(self.tick_ws_url, ping_interval=20, ping_timeout=20) as ws:
                    sub = {"action": "subscribe", "symbols": ",".join(symbols)}
                    await ws.send(json.dumps(sub))

                    log.info("Tick WS subscribed symbols=%s", symbols)
                    backoff = 1.0
                    async for raw in ws:
                        try:
                            data = json.loads(raw)
                        except ValueError:
                            continue

                        if not isinstance(data, dict):
                            continue

                        s = data.get("s")
                        p = data.get("p")
                        t = data.get("t")
                        if s is None or p is None or t is None:
                            continue

                        try:
                            tick = {"symbol": str(s), "price": float(p), "ts": _epoch_seconds(t)}
                        except (TypeError, ValueError):
                            continue
                        yield tick

            except (OSError, WebSocketException) as e:
                log.warning("Tick WS error: %s", e)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, 30.0)
