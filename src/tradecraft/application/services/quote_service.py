# src/tradecraft/application/services/quote_service.py
"""
Quote service with a short-lived cache and an optional live provider.
Synthetic quotes are the final fallback, so `get_quote` never fails for a
well-formed symbol.
"""
import logging
import random
import time
from typing import Callable, Dict, Iterable, Optional, Tuple

from tradecraft.domain.entities import Quote
from tradecraft.domain.errors import ValidationError
from tradecraft.infrastructure.cache import InMemoryCache
from tradecraft.infrastructure.market.finnhub_client import FinnhubClient

log = logging.getLogger(__name__)

# symbol -> (reference price, daily change)
SEED_QUOTES: Dict[str, Tuple[float, float]] = {
    "AAPL": (178.72, 1.25),
    "MSFT": (338.11, 2.45),
    "GOOGL": (142.65, 0.87),
    "AMZN": (178.15, -0.32),
    "TSLA": (177.8, -1.2),
    "META": (474.99, 3.21),
    "NVDA": (950.02, 15.75),
    "SPY": (504.85, 1.05),
    "QQQ": (438.27, 1.32),
}

JITTER = 0.0005  # +/-0.05% of the reference price


class QuoteService:

    def __init__(
        self,
        cache: InMemoryCache,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        live_client: Optional[FinnhubClient] = None,
    ):
        self.cache = cache
        self.rng = rng or random.Random()
        self.clock = clock
        self.live_client = live_client

    @staticmethod
    def _normalize_symbol(symbol: str) -> str:
        normalized = (symbol or "").strip().upper()
        if not normalized:
            raise ValidationError("Symbol is required")
        return normalized

    def synthetic_quote(self, symbol: str) -> Quote:
        """Builds a quote from the seed table (or random reference values) plus jitter."""
        seed = SEED_QUOTES.get(symbol)
        if seed is None:
            seed = (self.rng.uniform(50, 150), self.rng.uniform(-2, 2))
        base_price, base_change = seed

        previous_close = base_price - base_change
        price = base_price * (1 + self.rng.uniform(-JITTER, JITTER))
        change = price - previous_close
        return Quote(
            symbol=symbol,
            price=round(price, 4),
            change=round(change, 4),
            change_percent=round(change / previous_close * 100, 4),
            previous_close=round(previous_close, 4),
            timestamp=int(self.clock() * 1000),
        )

    async def get_quote(self, symbol: str) -> Quote:
        symbol = self._normalize_symbol(symbol)
        cache_key = f"quote:{symbol}"

        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        quote: Optional[Quote] = None
        if self.live_client is not None:
            try:
                quote = await self.live_client.get_quote(symbol)
            except Exception as e:
                log.error(f"Live quote provider failed for {symbol}: {e}")
                quote = None
            if quote is None:
                log.info(f"Live quote unavailable for {symbol}. Falling back to synthetic data.")

        if quote is None:
            quote = self.synthetic_quote(symbol)

        self.cache.set(cache_key, quote)
        return quote

    async def get_batch_quotes(self, symbols: Iterable[str]) -> Dict[str, Quote]:
        quotes: Dict[str, Quote] = {}
        for symbol in symbols:
            quote = await self.get_quote(symbol)
            quotes[quote.symbol] = quote
        return quotes
