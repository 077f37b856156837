"""Domain dataclasses decoupled from API schemas."""

from .models import NormalizedMarket, OutcomeQuote

__all__ = [
    "NormalizedMarket",
    "OutcomeQuote",
]
