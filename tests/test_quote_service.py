import random

import httpx
import pytest

from tradecraft.application.services.quote_service import JITTER, SEED_QUOTES, QuoteService
from tradecraft.domain.entities import Quote
from tradecraft.domain.errors import ValidationError
from tradecraft.infrastructure.cache import InMemoryCache
from tradecraft.infrastructure.market.finnhub_client import FinnhubClient


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class StubLiveClient:
    def __init__(self, quote=None):
        self.quote = quote
        self.calls = []

    async def get_quote(self, symbol):
        self.calls.append(symbol)
        return self.quote


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def quote_service(clock) -> QuoteService:
    return QuoteService(
        cache=InMemoryCache(ttl_seconds=60, clock=clock),
        rng=random.Random(42),
        clock=clock,
    )


@pytest.mark.asyncio
async def test_same_object_returned_within_ttl(quote_service, clock):
    first = await quote_service.get_quote("AAPL")
    clock.now += 30
    second = await quote_service.get_quote("AAPL")
    assert second is first


@pytest.mark.asyncio
async def test_new_quote_after_ttl(quote_service, clock):
    first = await quote_service.get_quote("AAPL")
    clock.now += 61
    second = await quote_service.get_quote("AAPL")
    assert second is not first
    assert second.timestamp != first.timestamp
    assert second.timestamp - first.timestamp == 61_000


@pytest.mark.asyncio
async def test_seeded_symbol_uses_reference_values(quote_service):
    quote = await quote_service.get_quote("NVDA")
    base, change = SEED_QUOTES["NVDA"]
    previous_close = base - change

    assert quote.previous_close == pytest.approx(previous_close, abs=1e-3)
    assert abs(quote.price - base) <= base * JITTER + 1e-3
    assert quote.change == pytest.approx(quote.price - previous_close, abs=1e-3)
    assert quote.change_percent == pytest.approx(quote.change / previous_close * 100, abs=1e-3)


@pytest.mark.asyncio
async def test_unknown_symbol_gets_plausible_random_quote(quote_service):
    quote = await quote_service.get_quote("zzzz")
    assert quote.symbol == "ZZZZ"
    # base price in [50, 150], change in [-2, 2]
    assert 48 <= quote.previous_close <= 152
    assert 50 * (1 - JITTER) - 1e-6 <= quote.price <= 150 * (1 + JITTER) + 1e-6


@pytest.mark.asyncio
async def test_symbol_is_normalized_for_cache_key(quote_service):
    first = await quote_service.get_quote(" msft ")
    second = await quote_service.get_quote("MSFT")
    assert first is second


@pytest.mark.asyncio
async def test_empty_symbol_rejected(quote_service):
    with pytest.raises(ValidationError):
        await quote_service.get_quote("   ")


@pytest.mark.asyncio
async def test_batch_quotes_reuse_cache(quote_service):
    single = await quote_service.get_quote("SPY")
    batch = await quote_service.get_batch_quotes(["SPY", "QQQ", "spy"])
    assert set(batch) == {"SPY", "QQQ"}
    assert batch["SPY"] is single


@pytest.mark.asyncio
async def test_live_quote_preferred_when_available(clock):
    live = Quote("AAPL", 200.0, 2.0, 1.01, 198.0, 123)
    client = StubLiveClient(quote=live)
    service = QuoteService(cache=InMemoryCache(clock=clock), clock=clock, live_client=client)

    assert await service.get_quote("AAPL") is live
    assert await service.get_quote("AAPL") is live
    assert client.calls == ["AAPL"]


@pytest.mark.asyncio
async def test_falls_back_to_synthetic_when_live_unavailable(clock):
    client = StubLiveClient(quote=None)
    service = QuoteService(cache=InMemoryCache(clock=clock), clock=clock, live_client=client)

    quote = await service.get_quote("TSLA")
    assert client.calls == ["TSLA"]
    assert quote.previous_close == pytest.approx(177.8 - (-1.2), abs=1e-3)


# --- Finnhub client ---

def _client_for(handler) -> FinnhubClient:
    return FinnhubClient(api_key="demo", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_finnhub_maps_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["symbol"] == "AAPL"
        assert request.url.params["token"] == "demo"
        return httpx.Response(200, json={"c": 110.0, "pc": 100.0, "t": 1_700_000_000})

    quote = await _client_for(handler).get_quote("AAPL")
    assert quote.price == 110.0
    assert quote.change == pytest.approx(10.0)
    assert quote.change_percent == pytest.approx(10.0)
    assert quote.timestamp == 1_700_000_000_000


@pytest.mark.asyncio
async def test_finnhub_empty_payload_returns_none():
    quote = await _client_for(lambda r: httpx.Response(200, json={"c": 0, "pc": 0})).get_quote("NOPE")
    assert quote is None


@pytest.mark.asyncio
async def test_finnhub_http_errors_return_none():
    assert await _client_for(lambda r: httpx.Response(500)).get_quote("AAPL") is None
    assert await _client_for(lambda r: httpx.Response(429)).get_quote("AAPL") is None


@pytest.mark.asyncio
async def test_finnhub_unexpected_payload_returns_none():
    assert await _client_for(lambda r: httpx.Response(200, json=[])).get_quote("AAPL") is None
    assert await _client_for(lambda r: httpx.Response(200, json={"c": "n/a", "pc": 1})).get_quote("AAPL") is None


@pytest.mark.asyncio
async def test_unexpected_live_payload_falls_back_to_synthetic(clock):
    client = _client_for(lambda r: httpx.Response(200, json=[]))
    service = QuoteService(cache=InMemoryCache(clock=clock), clock=clock, live_client=client)

    quote = await service.get_quote("AAPL")
    assert quote.symbol == "AAPL"
    assert quote.previous_close == pytest.approx(178.72 - 1.25, abs=1e-3)


@pytest.mark.asyncio
async def test_live_client_exception_falls_back_to_synthetic(clock):
    class BrokenClient:
        async def get_quote(self, symbol):
            raise RuntimeError("provider exploded")

    service = QuoteService(cache=InMemoryCache(clock=clock), clock=clock, live_client=BrokenClient())
    quote = await service.get_quote("MSFT")
    assert quote.previous_close == pytest.approx(338.11 - 2.45, abs=1e-3)
