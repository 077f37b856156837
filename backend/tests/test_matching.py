from __future__ import annotations

from datetime import datetime, timezone

from app.domain import NormalizedMarket
from app.services.matching import (
    CATEGORY_ALIASES,
    MatchRule,
    category_rules,
    matches_any,
    matches_search,
)


def _market(**overrides) -> NormalizedMarket:
    fields = {
        "market_id": "1",
        "question": "",
        "slug": None,
        "description": None,
        "category": None,
        "end_date": None,
        "active": True,
        "closed": False,
        "fetched_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return NormalizedMarket(**fields)


def test_crypto_alias_matches_cryptocurrency_category():
    market = _market(question="Will ETH flip?", category="Cryptocurrency")

    assert matches_any(market, category_rules("crypto"))


def test_crypto_alias_matches_bitcoin_question_without_category():
    market = _market(question="Will Bitcoin hit $150k?")

    assert matches_any(market, category_rules("crypto"))


def test_politics_alias_matches_election_category():
    assert matches_any(_market(category="US Elections"), category_rules("Politics"))
    assert matches_any(_market(category="Political Figures"), category_rules("politics"))


def test_sports_alias_matches_super_bowl_question():
    assert matches_any(_market(question="Who wins the Super Bowl?"), category_rules("sports"))
    assert matches_any(_market(category="Sport"), category_rules("sports"))


def test_plain_category_matches_category_question_or_tags():
    rules = category_rules("weather")

    assert matches_any(_market(category="Weather"), rules)
    assert matches_any(_market(question="Will the weather turn?"), rules)
    assert matches_any(_market(tags=["Weather"]), rules)
    assert not matches_any(_market(question="Fed rate cut?", category="Economics"), rules)


def test_unaliased_category_does_not_borrow_alias_rules():
    assert not matches_any(_market(question="Will Bitcoin hit $150k?"), category_rules("economics"))


def test_alias_table_is_data_driven():
    aliases = {"ai": (MatchRule("question", "openai"),)}

    rules = category_rules("AI", aliases)

    assert matches_any(_market(question="Will OpenAI release GPT-6?"), rules)
    assert "crypto" in CATEGORY_ALIASES


def test_search_matches_question_description_or_category_case_insensitively():
    assert matches_search(_market(question="Fed rate cut in March?"), "FED")
    assert matches_search(_market(description="Federal Reserve decision"), "federal")
    assert matches_search(_market(category="Economics"), "econ")
    assert not matches_search(_market(question="Fed", tags=["xyzzy"]), "xyzzy")
