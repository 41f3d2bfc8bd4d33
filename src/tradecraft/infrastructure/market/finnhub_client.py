# src/tradecraft/infrastructure/market/finnhub_client.py
import logging
import time
from typing import Optional

import httpx

from tradecraft.domain.entities import Quote

log = logging.getLogger(__name__)


class FinnhubClient:
    """
    Live quote provider. Returns None on any failure so the caller can fall
    back to synthetic data.
    """
    BASE_URL = "https://finnhub.io/api/v1"

    def __init__(self, api_key: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.BASE_URL}/quote",
                    params={"symbol": symbol, "token": self.api_key},
                )
                if response.status_code == 429:
                    log.warning(f"Finnhub 429 (Too Many Requests) for {symbol}.")
                    return None
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            log.error(f"Finnhub HTTP error for {symbol}: {e.response.status_code}")
            return None
        except (httpx.HTTPError, ValueError) as e:
            log.error(f"Finnhub fetch failed for {symbol}: {e}")
            return None

        try:
            current = float(data.get("c") or 0)
            previous_close = float(data.get("pc") or 0)
            ts = int(data.get("t") or 0)
        except (AttributeError, TypeError, ValueError) as e:
            log.error(f"Finnhub returned an unreadable quote for {symbol}: {e}")
            return None
        if current == 0 and previous_close == 0:
            log.warning(f"Finnhub returned an empty quote for {symbol}.")
            return None

        change = current - previous_close
        return Quote(
            symbol=symbol,
            price=current,
            change=change,
            change_percent=(change / previous_close * 100) if previous_close else 0.0,
            previous_close=previous_close,
            timestamp=ts * 1000 if ts else int(time.time() * 1000),
        )
