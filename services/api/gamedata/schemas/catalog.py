"""Schemas for catalog lookups (/v1/catalog/*)."""

from datetime import datetime

from pydantic import BaseModel, Field

from gamedata.models import PlatformInfo


class TagInfo(BaseModel):
    slug: str
    description: str


class TagsResponse(BaseModel):
    tags: list[TagInfo]


class PlatformsResponse(BaseModel):
    """Cached RAWG platform directory."""

    fetched_at: datetime = Field(alias="fetchedAt")
    expires_at: datetime = Field(alias="expiresAt")
    platforms: list[PlatformInfo]

    model_config = {"populate_by_name": True}
