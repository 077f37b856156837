"""Cached query planners over the Polymarket Gamma markets feed."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Sequence

from loguru import logger
from pydantic import BaseModel

from app.core.cache import QueryCache, cache_key
from app.core.config import Settings
from app.domain import NormalizedMarket
from app.schemas import (
    CategoryCount,
    CategoryInput,
    CategoryList,
    CategoryMarkets,
    HealthStatus,
    LiquidityInput,
    LiquidMarkets,
    Market,
    MarketInput,
    MarketNotFound,
    SearchInput,
    SearchResults,
    TrendingInput,
    TrendingMarkets,
)
from upstream.client import MarketFilters, PolymarketClient
from upstream.errors import UpstreamUnavailable
from upstream.normalize import normalize_markets

from .matching import category_rules, matches_any, matches_search


def _open_markets(limit: int, *, order: str | None = None) -> MarketFilters:
    return MarketFilters(
        active=True,
        closed=False,
        limit=limit,
        order=order,
        ascending=False if order else None,
    )


@dataclass(slots=True, frozen=True)
class QueryPlan:
    """Upstream filters plus the post-fetch filtering applied to their result."""

    filters: MarketFilters
    predicate: Callable[[NormalizedMarket], bool] | None = None
    sort_key: Callable[[NormalizedMarket], Any] | None = None
    descending: bool = False
    cap: int | None = None

    def apply(self, markets: Sequence[NormalizedMarket]) -> list[NormalizedMarket]:
        selected = [market for market in markets if self.predicate is None or self.predicate(market)]
        if self.sort_key is not None:
            selected.sort(key=self.sort_key, reverse=self.descending)
        if self.cap is not None:
            selected = selected[: self.cap]
        return selected


class MarketQueryService:
    """Answers simplified market queries, memoizing each result for the cache TTL."""

    def __init__(self, client: PolymarketClient, cache: QueryCache, settings: Settings):
        self._client = client
        self._cache = cache
        self._settings = settings

    async def health(self, *, version: str | None = None) -> HealthStatus:
        try:
            await self._client.fetch_markets(MarketFilters(limit=1))
            status = "healthy"
        except UpstreamUnavailable as exc:
            logger.warning("Health probe degraded: {}", exc)
            status = "degraded"
        return HealthStatus(
            status=status,
            timestamp=datetime.now(timezone.utc),
            version=version or self._settings.service_version,
        )

    async def trending(self, params: TrendingInput) -> TrendingMarkets:
        plan = QueryPlan(
            filters=_open_markets(params.limit, order="volume24hr"),
            cap=params.limit,
        )

        async def build() -> TrendingMarkets:
            fetched_at = datetime.now(timezone.utc)
            markets = await self._execute(plan, fetched_at=fetched_at)
            return TrendingMarkets(**self._listing(markets), fetched_at=fetched_at)

        return await self._cached(cache_key("trending", params.limit), build)

    async def market(self, params: MarketInput) -> Market | MarketNotFound:
        plan = QueryPlan(
            filters=MarketFilters(slug=params.slug),
            predicate=lambda market: market.slug == params.slug,
            cap=1,
        )

        async def build() -> Market | MarketNotFound:
            markets = await self._execute(plan)
            if not markets:
                logger.info("No market found for slug {}", params.slug)
                return MarketNotFound(slug=params.slug)
            return Market.model_validate(markets[0])

        return await self._cached(cache_key("market", params.slug), build)

    async def search(self, params: SearchInput) -> SearchResults:
        plan = QueryPlan(
            filters=_open_markets(self._settings.search_fetch_limit),
            predicate=lambda market: matches_search(market, params.query),
            cap=params.limit,
        )

        async def build() -> SearchResults:
            markets = await self._execute(plan)
            return SearchResults(**self._listing(markets), query=params.query)

        return await self._cached(cache_key("search", params.query, params.limit), build)

    async def categories(self) -> CategoryList:
        plan = QueryPlan(
            filters=_open_markets(self._settings.bulk_fetch_limit),
            predicate=lambda market: bool(market.category),
        )

        async def build() -> CategoryList:
            counts: dict[str, int] = {}
            for market in await self._execute(plan):
                counts[market.category] = counts.get(market.category, 0) + 1
            ordered = sorted(counts.items(), key=lambda item: (item[0].lower(), item[0]))
            entries = [CategoryCount(name=name, count=count) for name, count in ordered]
            return CategoryList(categories=entries, count=len(entries))

        return await self._cached(cache_key("categories"), build)

    async def category(self, params: CategoryInput) -> CategoryMarkets:
        rules = category_rules(params.category)
        plan = QueryPlan(
            filters=_open_markets(self._settings.bulk_fetch_limit, order="volume24hr"),
            predicate=lambda market: matches_any(market, rules),
            cap=params.limit,
        )

        async def build() -> CategoryMarkets:
            markets = await self._execute(plan)
            return CategoryMarkets(**self._listing(markets), category=params.category)

        return await self._cached(cache_key("category", params.category, params.limit), build)

    async def liquidity(self, params: LiquidityInput) -> LiquidMarkets:
        plan = QueryPlan(
            filters=_open_markets(self._settings.liquidity_fetch_limit),
            predicate=lambda market: market.liquidity >= params.min_liquidity,
            sort_key=lambda market: market.liquidity,
            descending=True,
            cap=params.limit,
        )

        async def build() -> LiquidMarkets:
            markets = await self._execute(plan)
            return LiquidMarkets(**self._listing(markets), min_liquidity=params.min_liquidity)

        return await self._cached(
            cache_key("liquidity", params.min_liquidity, params.limit), build
        )

    async def _cached(self, key: str, build: Callable[[], Awaitable[BaseModel]]) -> Any:
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        result = await build()
        self._cache.set(key, result)
        return result

    async def _execute(
        self, plan: QueryPlan, *, fetched_at: datetime | None = None
    ) -> list[NormalizedMarket]:
        raw_markets = await self._client.fetch_markets(plan.filters)
        markets = normalize_markets(raw_markets, fetched_at=fetched_at)
        return plan.apply(markets)

    @staticmethod
    def _listing(markets: Sequence[NormalizedMarket]) -> dict[str, Any]:
        payload = [Market.model_validate(market) for market in markets]
        return {"markets": payload, "count": len(payload)}
