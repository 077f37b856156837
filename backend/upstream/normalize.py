from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from app.domain import NormalizedMarket, OutcomeQuote

from .errors import MalformedUpstreamData


def _as_list(value: Any, field_name: str) -> list[Any]:
    """Return value as a list, decoding stringified JSON arrays.

    Missing values become an empty list; strings that are not a JSON array
    raise ``MalformedUpstreamData``.
    """
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as exc:
            raise MalformedUpstreamData(field_name, value) from exc
        if isinstance(parsed, list):
            return parsed
    raise MalformedUpstreamData(field_name, value)


def _parse_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def _parse_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes"}:
            return True
        if lowered in {"false", "0", "no"}:
            return False
    return None


def _first_number(raw_market: dict[str, Any], *keys: str) -> float:
    for key in keys:
        parsed = _parse_float(raw_market.get(key))
        if parsed is not None:
            return parsed
    return 0.0


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _parse_tags(value: Any) -> list[str]:
    try:
        raw_tags = _as_list(value, "tags")
    except MalformedUpstreamData:
        logger.debug("Ignoring undecodable tags field: {!r}", value)
        return []

    tags: list[str] = []
    for item in raw_tags:
        if isinstance(item, dict):
            label = item.get("label") or item.get("slug") or item.get("name")
            if label:
                tags.append(str(label))
        elif isinstance(item, str) and item:
            tags.append(item)
    return tags


def _decode_outcomes(raw_market: dict[str, Any]) -> tuple[list[Any], list[Any]]:
    """Decode outcome names and prices; a failure on either empties both."""
    try:
        names = _as_list(raw_market.get("outcomes"), "outcomes")
        prices = _as_list(raw_market.get("outcomePrices"), "outcomePrices")
    except MalformedUpstreamData as exc:
        logger.debug(
            "Market {} has malformed {}; treating outcomes as empty",
            raw_market.get("id"),
            exc.field_name,
        )
        return [], []
    return names, prices


def compute_spread(prices: list[Any]) -> float | None:
    """Deviation of the first two outcome prices from summing to exactly 1."""

    if len(prices) < 2:
        return None
    first = _parse_float(prices[0])
    second = _parse_float(prices[1])
    if first is None or second is None:
        return None
    return abs(first + second - 1)


def build_outcomes(names: list[Any], prices: list[Any]) -> list[OutcomeQuote]:
    outcomes: list[OutcomeQuote] = []
    for index, name in enumerate(names):
        price = _parse_float(prices[index]) if index < len(prices) else None
        outcomes.append(OutcomeQuote(name=str(name), probability=price or 0.0))
    return outcomes


def normalize_market(
    raw_market: dict[str, Any], *, fetched_at: datetime | None = None
) -> NormalizedMarket:
    names, prices = _decode_outcomes(raw_market)
    first_price = _parse_float(prices[0]) if prices else None
    raw_id = raw_market.get("id") or raw_market.get("marketId") or raw_market.get("_id")

    return NormalizedMarket(
        market_id=str(raw_id) if raw_id is not None else "",
        question=_optional_text(raw_market.get("question") or raw_market.get("title")) or "",
        slug=_optional_text(raw_market.get("slug")),
        description=_optional_text(raw_market.get("description")),
        category=_optional_text(raw_market.get("category")),
        end_date=_optional_text(raw_market.get("endDate")),
        active=_parse_bool(raw_market.get("active")),
        closed=_parse_bool(raw_market.get("closed")),
        fetched_at=fetched_at or datetime.now(timezone.utc),
        probability=first_price or 0.0,
        spread=compute_spread(prices),
        volume_24h=_first_number(raw_market, "volume24hr"),
        volume_total=_first_number(raw_market, "volumeNum", "volume"),
        liquidity=_first_number(raw_market, "liquidityNum", "liquidity"),
        outcomes=build_outcomes(names, prices),
        tags=_parse_tags(raw_market.get("tags")),
    )


def normalize_markets(
    raw_markets: list[dict[str, Any]], *, fetched_at: datetime | None = None
) -> list[NormalizedMarket]:
    """Normalize a batch with one shared fetch timestamp."""

    stamp = fetched_at or datetime.now(timezone.utc)
    return [normalize_market(raw_market, fetched_at=stamp) for raw_market in raw_markets]
