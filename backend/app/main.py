from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Awaitable

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

from . import schemas
from .core.cache import QueryCache
from .core.config import get_settings, settings
from .core.logging import configure_logging
from .services.query_service import MarketQueryService
from upstream.client import PolymarketClient
from upstream.errors import UpstreamUnavailable


ENTRYPOINTS: tuple[tuple[str, str, type[BaseModel]], ...] = (
    ("health", "Health check and API status", schemas.EmptyInput),
    ("trending", "Get top trending prediction markets by 24h volume", schemas.TrendingInput),
    ("market", "Get detailed market data by slug", schemas.MarketInput),
    ("search", "Search prediction markets by keyword", schemas.SearchInput),
    ("categories", "List market categories with their open market counts", schemas.EmptyInput),
    (
        "category",
        "Get markets filtered by category (crypto, politics, sports, etc.)",
        schemas.CategoryInput,
    ),
    ("liquidity", "Get markets with highest liquidity (best for trading)", schemas.LiquidityInput),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared upstream client and query cache for the process lifetime."""

    current = get_settings()
    configure_logging(current)
    http_client = httpx.AsyncClient(
        base_url=str(current.polymarket_base_url),
        timeout=current.upstream_timeout_seconds,
    )
    client = PolymarketClient(client=http_client)
    cache = QueryCache(
        ttl_seconds=current.cache_ttl_seconds,
        max_entries=current.cache_max_entries,
    )
    app.state.query_service = MarketQueryService(client, cache, current)
    logger.info(
        "{} {} proxying {}", current.service_name, current.service_version, current.polymarket_base_url
    )
    try:
        yield
    finally:
        await http_client.aclose()


app = FastAPI(
    title="Polymarket Agent API",
    version=settings.service_version,
    debug=settings.debug,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def _invalid_input(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"output": {"error": "Invalid input", "details": jsonable_encoder(exc.errors())}},
    )


def _query_service(request: Request) -> MarketQueryService:
    """Provide the query service built during application startup."""

    return request.app.state.query_service


async def _invoke(key: str, params: BaseModel, call: Awaitable[BaseModel]) -> dict[str, Any]:
    """Run one entrypoint, turning upstream outages into an error payload."""

    try:
        output: BaseModel = await call
    except UpstreamUnavailable as exc:
        logger.warning("Entrypoint {} failed upstream: {}", key, exc)
        output = schemas.ErrorOutput(
            error="Upstream unavailable",
            entrypoint=key,
            detail=str(exc),
            input=params.model_dump(by_alias=True),
        )
    return {"output": output}


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


@app.get("/entrypoints", tags=["system"])
def list_entrypoints():
    """Describe every invokable entrypoint and its input schema."""

    items = [
        schemas.EntrypointInfo(
            key=key,
            description=description,
            input_schema=model.model_json_schema(by_alias=True),
        ).model_dump(by_alias=True)
        for key, description, model in ENTRYPOINTS
    ]
    return {"entrypoints": items}


@app.post("/entrypoints/health/invoke", tags=["entrypoints"])
async def invoke_health(
    payload: schemas.EmptyRequest | None = None,
    service: MarketQueryService = Depends(_query_service),
):
    return {"output": await service.health()}


@app.post("/entrypoints/trending/invoke", tags=["entrypoints"])
async def invoke_trending(
    payload: schemas.TrendingRequest | None = None,
    service: MarketQueryService = Depends(_query_service),
):
    params = (payload or schemas.TrendingRequest()).input
    return await _invoke("trending", params, service.trending(params))


@app.post("/entrypoints/market/invoke", tags=["entrypoints"])
async def invoke_market(
    payload: schemas.MarketRequest,
    service: MarketQueryService = Depends(_query_service),
):
    return await _invoke("market", payload.input, service.market(payload.input))


@app.post("/entrypoints/search/invoke", tags=["entrypoints"])
async def invoke_search(
    payload: schemas.SearchRequest,
    service: MarketQueryService = Depends(_query_service),
):
    return await _invoke("search", payload.input, service.search(payload.input))


@app.post("/entrypoints/categories/invoke", tags=["entrypoints"])
async def invoke_categories(
    payload: schemas.EmptyRequest | None = None,
    service: MarketQueryService = Depends(_query_service),
):
    params = (payload or schemas.EmptyRequest()).input
    return await _invoke("categories", params, service.categories())


@app.post("/entrypoints/category/invoke", tags=["entrypoints"])
async def invoke_category(
    payload: schemas.CategoryRequest,
    service: MarketQueryService = Depends(_query_service),
):
    return await _invoke("category", payload.input, service.category(payload.input))


@app.post("/entrypoints/liquidity/invoke", tags=["entrypoints"])
async def invoke_liquidity(
    payload: schemas.LiquidityRequest | None = None,
    service: MarketQueryService = Depends(_query_service),
):
    params = (payload or schemas.LiquidityRequest()).input
    return await _invoke("liquidity", params, service.liquidity(params))


@app.post("/entrypoints/{key}/invoke", tags=["entrypoints"])
async def invoke_unknown(key: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"output": {"error": "Unknown entrypoint", "entrypoint": key}},
    )
