import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from loguru import logger
from pydantic import ValidationError

from app import schemas
from app.core.cache import QueryCache
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.services.query_service import MarketQueryService
from upstream.client import PolymarketClient
from upstream.errors import UpstreamUnavailable


QUERY_KINDS = ("health", "trending", "market", "search", "categories", "category", "liquidity")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a single Polymarket market query")
    parser.add_argument("kind", choices=QUERY_KINDS, help="Query to run")
    parser.add_argument("--limit", type=int, default=None, help="Maximum markets to return")
    parser.add_argument("--slug", default=None, help="Market slug (market)")
    parser.add_argument("--query", default=None, help="Search text (search)")
    parser.add_argument("--category", default=None, help="Category name (category)")
    parser.add_argument(
        "--min-liquidity",
        type=float,
        default=None,
        help="Minimum liquidity in USD (liquidity)",
    )
    return parser.parse_args(argv)


def _build_input(args: argparse.Namespace) -> dict[str, object]:
    fields = {
        "limit": args.limit,
        "slug": args.slug,
        "query": args.query,
        "category": args.category,
        "minLiquidity": args.min_liquidity,
    }
    return {key: value for key, value in fields.items() if value is not None}


async def run_query(service: MarketQueryService, kind: str, raw_input: dict[str, object]):
    if kind == "health":
        return await service.health()
    if kind == "categories":
        return await service.categories()
    if kind == "trending":
        return await service.trending(schemas.TrendingInput.model_validate(raw_input))
    if kind == "market":
        return await service.market(schemas.MarketInput.model_validate(raw_input))
    if kind == "search":
        return await service.search(schemas.SearchInput.model_validate(raw_input))
    if kind == "category":
        return await service.category(schemas.CategoryInput.model_validate(raw_input))
    return await service.liquidity(schemas.LiquidityInput.model_validate(raw_input))


async def _main(args: argparse.Namespace) -> int:
    settings = get_settings()
    configure_logging(settings)
    cache = QueryCache(ttl_seconds=settings.cache_ttl_seconds, max_entries=settings.cache_max_entries)
    async with PolymarketClient() as client:
        service = MarketQueryService(client, cache, settings)
        try:
            output = await run_query(service, args.kind, _build_input(args))
        except UpstreamUnavailable as exc:
            logger.error("Polymarket unavailable: {}", exc)
            return 1
        except ValidationError as exc:
            logger.error("Invalid {} input: {}", args.kind, exc)
            return 2
    print(json.dumps({"output": output.model_dump(mode="json", by_alias=True)}, indent=2))
    return 0


def main() -> None:
    args = parse_args()
    raise SystemExit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
