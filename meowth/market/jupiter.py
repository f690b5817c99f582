"""
Jupiter price feed: spot prices for the tracked Solana pairs.
API docs: https://station.jup.ag/docs/apis/price-api-v2

The price endpoint exposes neither short-window change nor volume, so
change_5m / change_1h are computed from the samples this provider has
already seen, and volume is reported as 0.
"""
import time
from collections import deque
from typing import Optional

import httpx

from meowth.config import MarketPair, Settings
from meowth.market.base import MarketDataProvider, MarketQuote
from meowth.observability.logger import get_logger

log = get_logger("market.jupiter")

# Samples older than this are dropped; must cover the longest change window
SAMPLE_RETENTION_SECONDS = 2 * 60 * 60
FIVE_MINUTES = 5 * 60
ONE_HOUR = 60 * 60


class JupiterMarketData(MarketDataProvider):
    name = "jupiter"

    def __init__(self, config: Settings, client: Optional[httpx.AsyncClient] = None, clock=time.time):
        self.config = config
        self.pairs: list[MarketPair] = list(config.market_pairs)
        self._client = client
        self._clock = clock
        self._samples: dict[str, deque] = {p.symbol: deque() for p in self.pairs}

    async def fetch_quotes(self) -> list[MarketQuote]:
        if self._client is not None:
            return [await self._fetch_pair(self._client, p) for p in self.pairs]

        async with httpx.AsyncClient(timeout=httpx.Timeout(self.config.market_timeout_seconds)) as client:
            return [await self._fetch_pair(client, p) for p in self.pairs]

    async def _fetch_pair(self, client: httpx.AsyncClient, pair: MarketPair) -> MarketQuote:
        try:
            response = await client.get(
                self.config.jupiter_price_url,
                params={"ids": pair.mint},
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            data = response.json()
            price_data = (data.get("data") or {}).get(pair.mint)
            if not price_data or price_data.get("price") is None:
                log.warning("jupiter_price_missing", pair=pair.symbol)
                return MarketQuote.failed(pair.symbol)
            price = float(price_data["price"])
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            log.warning("jupiter_fetch_failed", pair=pair.symbol, error=str(e))
            return MarketQuote.failed(pair.symbol)

        now = self._clock()
        self._record(pair.symbol, now, price)
        return MarketQuote(
            pair=pair.symbol,
            price=price,
            change_5m=self._change(pair.symbol, now, price, FIVE_MINUTES),
            change_1h=self._change(pair.symbol, now, price, ONE_HOUR),
            volume_24h=0.0,
            source="Jupiter",
        )

    def _record(self, symbol: str, now: float, price: float):
        samples = self._samples.setdefault(symbol, deque())
        samples.append((now, price))
        while samples and now - samples[0][0] > SAMPLE_RETENTION_SECONDS:
            samples.popleft()

    def _change(self, symbol: str, now: float, price: float, window: float) -> float:
        """Percent change against the newest sample at least ``window`` seconds old."""
        reference = None
        for ts, sample_price in self._samples.get(symbol, ()):
            if now - ts >= window:
                reference = sample_price
            else:
                break
        if not reference:
            return 0.0
        return (price - reference) / reference * 100
