"""RAWG game summary subset used across the stack."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Genre(BaseModel):
    """Genre tag attached to a game."""

    id: int
    slug: str
    name: str


class PlatformInfo(BaseModel):
    """A RAWG platform (also the shape of platform directory entries)."""

    id: int
    slug: str
    name: str


class PlatformEntry(BaseModel):
    """Platform association as RAWG nests it: {"platform": {...}}."""

    platform: PlatformInfo


class GameSummary(BaseModel):
    """One catalog entry. ``id`` is the dedup identity within a dataset."""

    model_config = ConfigDict(extra="ignore")

    id: int
    slug: str
    name: str
    released: str | None = None
    metacritic: int | None = None
    rating: float | None = None
    genres: list[Genre] = Field(default_factory=list)
    platforms: list[PlatformEntry] = Field(default_factory=list)

    @field_validator("genres", "platforms", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        # RAWG sends null for games without genre/platform data.
        return [] if v is None else v
