"""Typed domain representations shared by the upstream layer and the API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True, frozen=True)
class OutcomeQuote:
    """One named outcome with the probability implied by its price."""

    name: str
    probability: float


@dataclass(slots=True)
class NormalizedMarket:
    """Stable snapshot of an upstream market record with derived fields."""

    market_id: str
    question: str
    slug: str | None
    description: str | None
    category: str | None
    end_date: str | None
    active: bool | None
    closed: bool | None
    fetched_at: datetime
    probability: float = 0.0
    spread: float | None = None
    volume_24h: float = 0.0
    volume_total: float = 0.0
    liquidity: float = 0.0
    outcomes: list[OutcomeQuote] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
