"""Text matching rules used by the search and category queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Mapping

from app.domain import NormalizedMarket


MatchField = Literal["question", "description", "category", "tags"]


@dataclass(slots=True, frozen=True)
class MatchRule:
    """Case-insensitive substring test against one market field."""

    field: MatchField
    substring: str

    def matches(self, market: NormalizedMarket) -> bool:
        needle = self.substring.lower()
        return any(needle in value.lower() for value in _field_values(market, self.field))


CATEGORY_ALIASES: Mapping[str, tuple[MatchRule, ...]] = {
    "crypto": (
        MatchRule("category", "cryptocurrency"),
        MatchRule("question", "bitcoin"),
        MatchRule("question", "crypto"),
    ),
    "politics": (
        MatchRule("category", "political"),
        MatchRule("category", "election"),
    ),
    "sports": (
        MatchRule("category", "sport"),
        MatchRule("question", "super bowl"),
    ),
}


def _field_values(market: NormalizedMarket, field: MatchField) -> list[str]:
    if field == "tags":
        return list(market.tags)
    value = getattr(market, field)
    return [value] if value else []


def matches_search(market: NormalizedMarket, query: str) -> bool:
    needle = query.lower()
    return any(
        needle in value.lower()
        for field in ("question", "description", "category")
        for value in _field_values(market, field)
    )


def category_rules(
    category: str, aliases: Mapping[str, tuple[MatchRule, ...]] = CATEGORY_ALIASES
) -> tuple[MatchRule, ...]:
    """Rules a market must satisfy at least one of to belong to ``category``."""

    requested = category.strip()
    base = (
        MatchRule("category", requested),
        MatchRule("question", requested),
        MatchRule("tags", requested),
    )
    return base + tuple(aliases.get(requested.lower(), ()))


def matches_any(market: NormalizedMarket, rules: tuple[MatchRule, ...]) -> bool:
    return any(rule.matches(market) for rule in rules)
