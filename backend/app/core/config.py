from functools import lru_cache

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    service_name: str = Field(
        default="polymarket-agent",
        description="Service name reported in the API title",
    )
    service_version: str = Field(
        default="1.0.0",
        description="Version string reported by the health entrypoint",
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum loguru level written to stderr",
    )
    polymarket_base_url: AnyUrl = Field(
        default="https://gamma-api.polymarket.com",
        description="Base URL for Polymarket API",
    )
    polymarket_markets_path: str = Field(
        default="/markets",
        description="Relative path for markets endpoint",
    )
    upstream_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout applied to every upstream request",
    )
    upstream_max_limit: int = Field(
        default=200,
        description="Hard cap on the limit parameter sent upstream",
        ge=1,
    )
    cache_ttl_seconds: float = Field(
        default=60.0,
        description="Seconds a cached query result stays fresh",
    )
    cache_max_entries: int = Field(
        default=1024,
        description="Maximum cached query results before LRU eviction (0 disables the bound)",
        ge=0,
    )
    search_fetch_limit: int = Field(
        default=100,
        description="Number of markets fetched upstream for keyword search",
        ge=1,
    )
    bulk_fetch_limit: int = Field(
        default=200,
        description="Number of markets fetched upstream for category listings",
        ge=1,
    )
    liquidity_fetch_limit: int = Field(
        default=100,
        description="Number of markets fetched upstream for the liquidity ranking",
        ge=1,
    )

    @field_validator("cache_ttl_seconds", "upstream_timeout_seconds")
    @classmethod
    def _require_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("cache_ttl_seconds and upstream_timeout_seconds must be positive")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> str:
        level = str(value or "").strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(
                f"LOG_LEVEL must be one of {', '.join(sorted(_LOG_LEVELS))}"
            )
        return level


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
