"""Application settings via Pydantic Settings."""

from functools import lru_cache
import json
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_list(v: object) -> list[str]:
    """
    Accept either:
    - JSON array string: '["https://a.com","http://localhost:3000"]'
    - Comma-separated string: "https://a.com,http://localhost:3000"
    - Already-parsed list
    """
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return [str(x).strip() for x in v if str(x).strip()]
    if isinstance(v, str):
        s = v.strip()
        if not s:
            return []
        if s.startswith("["):
            try:
                parsed = json.loads(s)
            except json.JSONDecodeError:
                # Fall back to comma split if env var isn't valid JSON.
                parsed = s.split(",")
            if isinstance(parsed, list):
                return [str(x).strip() for x in parsed if str(x).strip()]
            return [str(parsed).strip()]
        return [part.strip() for part in s.split(",") if part.strip()]
    return [str(v).strip()] if str(v).strip() else []


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Game Data Engine API"
    app_version: str = "0.5.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # CORS
    # NoDecode: env values reach the validators raw, so comma-separated lists work.
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        validation_alias=AliasChoices("CORS_ORIGINS", "ALLOWED_ORIGINS"),
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v: object) -> list[str]:
        return _parse_list(v)

    # RAWG
    rawg_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("RAWG_API_KEY", "RAWG_KEY"),
    )
    rawg_api_base: str = Field(
        default="https://api.rawg.io/api",
        validation_alias=AliasChoices("RAWG_API_BASE"),
    )
    rawg_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices("RAWG_TIMEOUT_SECONDS"),
        gt=0,
    )
    rawg_result_hard_limit: int = Field(
        default=1000,
        validation_alias=AliasChoices("RAWG_RESULT_HARD_LIMIT"),
        ge=1,
        description="Refuse filter sets whose upstream count exceeds this many games.",
    )
    rawg_retry_waits: Annotated[list[float], NoDecode] = Field(
        default_factory=lambda: [0.0, 1.0, 2.0, 4.0],
        validation_alias=AliasChoices("RAWG_RETRY_WAITS"),
        description="Sleep before each attempt; the list length is the attempt ceiling.",
    )

    @field_validator("rawg_retry_waits", mode="before")
    @classmethod
    def _parse_retry_waits(cls, v: object) -> list[float]:
        waits = [float(x) for x in _parse_list(v)]
        return waits or [0.0]

    # Cache TTLs
    dataset_ttl_seconds: int = Field(
        default=3600,
        validation_alias=AliasChoices("DATASET_TTL_SECONDS"),
        ge=1,
    )
    platform_cache_ttl_seconds: int = Field(
        default=6 * 3600,
        validation_alias=AliasChoices("PLATFORM_CACHE_TTL_SECONDS"),
        ge=1,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
