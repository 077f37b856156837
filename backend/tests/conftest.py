from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import httpx
import pytest

from app.core.cache import QueryCache
from app.core.config import Settings
from app.services.query_service import MarketQueryService
from upstream.client import PolymarketClient


BASE_URL = "https://gamma.test"


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """Stands in for the Gamma ``/markets`` endpoint via ``httpx.MockTransport``."""

    def __init__(self, markets: list[dict[str, object]]) -> None:
        self.markets = markets
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "upstream failure"})
        params = request.url.params
        records = self.markets
        if "slug" in params:
            records = [market for market in records if market.get("slug") == params["slug"]]
        if "limit" in params:
            records = records[: int(params["limit"])]
        return httpx.Response(200, json=records)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def sample_markets() -> list[dict[str, object]]:
    path = Path(__file__).parent / "data" / "sample_markets.json"
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def sample_market_payload(sample_markets) -> dict[str, object]:
    return sample_markets[0]


@pytest.fixture
def test_settings(monkeypatch) -> Settings:
    settings = Settings(
        polymarket_base_url=BASE_URL,
        cache_ttl_seconds=60.0,
        cache_max_entries=32,
        upstream_timeout_seconds=1.0,
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upstream(sample_markets) -> FakeUpstream:
    return FakeUpstream(sample_markets)


@pytest.fixture
def polymarket_client(upstream, test_settings) -> PolymarketClient:
    http_client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(upstream))
    return PolymarketClient(
        base_url=BASE_URL,
        max_limit=test_settings.upstream_max_limit,
        client=http_client,
    )


@pytest.fixture
def query_cache(test_settings, fake_clock) -> QueryCache:
    return QueryCache(
        ttl_seconds=test_settings.cache_ttl_seconds,
        max_entries=test_settings.cache_max_entries,
        clock=fake_clock,
    )


@pytest.fixture
def query_service(polymarket_client, query_cache, test_settings) -> MarketQueryService:
    return MarketQueryService(polymarket_client, query_cache, test_settings)
