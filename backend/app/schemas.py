from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


class _TextInput(BaseModel):
    @field_validator("slug", "query", "category", mode="before", check_fields=False)
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value


class EmptyInput(BaseModel):
    pass


class TrendingInput(BaseModel):
    limit: int = Field(10, ge=1, le=20)


class MarketInput(_TextInput):
    slug: str = Field(min_length=1)


class SearchInput(_TextInput):
    query: str = Field(min_length=1)
    limit: int = Field(10, ge=1, le=50)


class CategoryInput(_TextInput):
    category: str = Field(min_length=1)
    limit: int = Field(10, ge=1, le=20)


class LiquidityInput(BaseModel):
    min_liquidity: float = Field(10000, alias="minLiquidity")
    limit: int = Field(10, ge=1, le=20)

    model_config = {"populate_by_name": True}


class EmptyRequest(BaseModel):
    input: EmptyInput = Field(default_factory=EmptyInput)


class TrendingRequest(BaseModel):
    input: TrendingInput = Field(default_factory=TrendingInput)


class MarketRequest(BaseModel):
    input: MarketInput


class SearchRequest(BaseModel):
    input: SearchInput


class CategoryRequest(BaseModel):
    input: CategoryInput


class LiquidityRequest(BaseModel):
    input: LiquidityInput = Field(default_factory=LiquidityInput)


class Outcome(BaseModel):
    name: str
    probability: float

    model_config = {"from_attributes": True}


class Market(BaseModel):
    market_id: str = Field(serialization_alias="id")
    question: str
    slug: str | None = None
    description: str | None = None
    category: str | None = None
    probability: float = 0.0
    outcomes: list[Outcome] = Field(default_factory=list)
    volume_24h: float = Field(0.0, serialization_alias="volume24h")
    volume_total: float = Field(0.0, serialization_alias="volumeTotal")
    liquidity: float = 0.0
    end_date: str | None = Field(None, serialization_alias="endDate")
    active: bool | None = None
    closed: bool | None = None
    spread: float | None = None
    tags: list[str] = Field(default_factory=list)
    fetched_at: datetime = Field(serialization_alias="fetchedAt")

    model_config = {"from_attributes": True}


class MarketNotFound(BaseModel):
    error: str = "Market not found"
    slug: str


class MarketList(BaseModel):
    markets: list[Market] = Field(default_factory=list)
    count: int = 0


class TrendingMarkets(MarketList):
    fetched_at: datetime = Field(serialization_alias="fetchedAt")


class SearchResults(MarketList):
    query: str


class CategoryMarkets(MarketList):
    category: str


class LiquidMarkets(MarketList):
    min_liquidity: float = Field(serialization_alias="minLiquidity")


class CategoryCount(BaseModel):
    name: str
    count: int


class CategoryList(BaseModel):
    categories: list[CategoryCount] = Field(default_factory=list)
    count: int = 0


class HealthStatus(BaseModel):
    status: str
    timestamp: datetime
    source: str = "polymarket"
    version: str


class ErrorOutput(BaseModel):
    error: str
    entrypoint: str
    detail: Any = None
    input: dict[str, Any] | None = None


class EntrypointInfo(BaseModel):
    key: str
    description: str
    input_schema: dict[str, Any] = Field(serialization_alias="inputSchema")
