"""Schemas for the dataset endpoints (/v1/datasets/*)."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from gamedata.models import DEFAULT_PAGE_SIZE, CanonicalFilters


class FetchFilters(BaseModel):
    """Caller-supplied filters. Values may be comma-joined ("action,rpg")."""

    genres: list[str] | None = None
    platforms: list[str] | None = None
    parent_platforms: list[str] | None = Field(default=None, alias="parentPlatforms")
    tags: list[str] | None = None
    released_from: str | None = Field(default=None, alias="releasedFrom", examples=["2020-01-01"])
    released_to: str | None = Field(default=None, alias="releasedTo", examples=["2024-12-31"])
    page: int | None = Field(default=None, ge=1, le=40)
    page_size: int | None = Field(default=None, alias="pageSize", ge=1, le=DEFAULT_PAGE_SIZE)

    model_config = {"populate_by_name": True}

    @field_validator("genres", "platforms", "parent_platforms", "tags", mode="before")
    @classmethod
    def _wrap_single_value(cls, v: object) -> object:
        if isinstance(v, str):
            return [v]
        return v


class FetchDatasetRequest(BaseModel):
    """Request body for POST /v1/datasets/fetch."""

    filters: FetchFilters = Field(default_factory=FetchFilters)
    force: bool = False


class FetchDatasetResponse(BaseModel):
    """Response payload for POST /v1/datasets/fetch."""

    dataset_id: str = Field(alias="datasetId")
    dataset_key: str = Field(alias="datasetKey")
    cache_status: Literal["hit", "miss", "refresh"] = Field(alias="cacheStatus")
    total_pages: int = Field(alias="totalPages", ge=0)
    total_items: int = Field(alias="totalItems", ge=0)
    fetched_at: datetime = Field(alias="fetchedAt")
    expires_at: datetime = Field(alias="expiresAt")
    filters: CanonicalFilters

    model_config = {"populate_by_name": True}


class DatasetSummary(BaseModel):
    """Metadata of a cached aggregate (GET /v1/datasets/{datasetId})."""

    dataset_id: str = Field(alias="datasetId")
    total_pages: int = Field(alias="totalPages", ge=0)
    total_items: int = Field(alias="totalItems", ge=0)
    fetched_at: datetime = Field(alias="fetchedAt")
    expires_at: datetime = Field(alias="expiresAt")
    version: str
    filters: CanonicalFilters

    model_config = {"populate_by_name": True}


class QueryRequest(BaseModel):
    """Request body for POST /v1/datasets/{datasetId}/query."""

    query: str = Field(
        description="JSON Query expression evaluated against {items: [...]}",
        examples=[".items | unnest(.genres) | groupBy(.genres.name) | mapValues(size())"],
    )
    fresh: bool = False


class QueryResponse(BaseModel):
    """Response payload for POST /v1/datasets/{datasetId}/query."""

    dataset_id: str = Field(alias="datasetId")
    items_processed: int = Field(alias="itemsProcessed", ge=0)
    value: Any = None
    fetched_at: datetime = Field(alias="fetchedAt")
    expires_at: datetime = Field(alias="expiresAt")

    model_config = {"populate_by_name": True}


class CalculationRequest(BaseModel):
    """Request body for POST /v1/datasets/{datasetId}/calculate."""

    operation: Literal["avg", "count", "min", "max"]
    field: Literal["metacritic", "rating"]
    group_by: Literal["genres", "platforms"] | None = Field(default=None, alias="groupBy")
    fresh: bool = False

    model_config = {"populate_by_name": True}


class GroupCalculation(BaseModel):
    label: str
    value: float | None
    count: int


class CalculationResponse(BaseModel):
    """Response payload for POST /v1/datasets/{datasetId}/calculate."""

    dataset_id: str = Field(alias="datasetId")
    operation: str
    field: str
    group_by: str | None = Field(alias="groupBy")
    value: int | float | list[GroupCalculation] | None
    items_processed: int = Field(alias="itemsProcessed", ge=0)
    fetched_at: datetime = Field(alias="fetchedAt")
    expires_at: datetime = Field(alias="expiresAt")

    model_config = {"populate_by_name": True}
