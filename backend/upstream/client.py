from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from app.core.config import settings

from .errors import UpstreamUnavailable


@dataclass(slots=True, frozen=True)
class MarketFilters:
    """Query parameters accepted by the Gamma ``/markets`` bulk fetch."""

    active: bool | None = None
    closed: bool | None = None
    limit: int | None = None
    order: str | None = None
    ascending: bool | None = None
    slug: str | None = None


class PolymarketClient:
    """Async wrapper around the Polymarket Gamma markets endpoint."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        markets_path: str | None = None,
        max_limit: int | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url or str(settings.polymarket_base_url)
        self.markets_path = markets_path or settings.polymarket_markets_path
        self.max_limit = max_limit or settings.upstream_max_limit
        self.timeout = timeout or settings.upstream_timeout_seconds
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)

    def _build_params(self, filters: MarketFilters) -> dict[str, str]:
        params: dict[str, str] = {}
        limit = filters.limit
        if limit is not None:
            limit = max(1, min(limit, self.max_limit))
        candidates = {
            "active": filters.active,
            "closed": filters.closed,
            "limit": limit,
            "order": filters.order,
            "ascending": filters.ascending,
            "slug": filters.slug,
        }
        for key, value in candidates.items():
            serialized = self._serialize_filter_value(value)
            if serialized is not None:
                params[key] = serialized
        return params

    @staticmethod
    def _serialize_filter_value(value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    @staticmethod
    def _extract_markets(payload: Any) -> list[Any]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            candidates: tuple[Any, ...] = (
                payload.get("markets"),
                payload.get("data"),
                payload.get("result"),
            )
            raw_markets = next(
                (value for value in candidates if isinstance(value, list)), None
            )
            if raw_markets is not None:
                return raw_markets
            single_market = payload.get("market")
            if isinstance(single_market, dict):
                return [single_market]
        raise UpstreamUnavailable(
            f"Polymarket returned an unexpected payload type: {type(payload).__name__}"
        )

    async def fetch_markets(self, filters: MarketFilters) -> list[dict[str, Any]]:
        params = self._build_params(filters)
        logger.info("Polymarket GET {} params={}", self.markets_path, params)
        try:
            response = await self.client.get(self.markets_path, params=params)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("Polymarket request timed out after {}s: {}", self.timeout, exc)
            raise UpstreamUnavailable("Polymarket request timed out") from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.warning("Polymarket answered HTTP {} for {}", status_code, params)
            raise UpstreamUnavailable(
                f"Polymarket answered HTTP {status_code}", status_code=status_code
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Polymarket request failed: {}", exc)
            raise UpstreamUnavailable(f"Polymarket request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("Polymarket returned a body that is not JSON")
            raise UpstreamUnavailable("Polymarket returned invalid JSON") from exc

        raw_markets = self._extract_markets(payload)
        records = [market for market in raw_markets if isinstance(market, dict)]
        dropped = len(raw_markets) - len(records)
        if dropped:
            logger.warning("Dropped {} non-object market records from Polymarket payload", dropped)
        return records

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "PolymarketClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
