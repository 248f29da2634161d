"""Cached dataset records (page records and the merged aggregate).

Both share one shape and are stored as JSON under:
- ``<datasetKey>:p<page>`` for a single upstream page
- ``<datasetKey>`` for the deduplicated union of all pages
"""

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from gamedata.models.game import GameSummary

DEFAULT_PAGE_SIZE = 40
DATASET_VERSION = "v1"
DATASET_NAMESPACE_PREFIX = f"rawg:games:{DATASET_VERSION}"


class CanonicalFilters(BaseModel):
    """Normalized filter set. Field order is part of the dataset key."""

    model_config = ConfigDict(populate_by_name=True)

    genres: list[str] = Field(default_factory=list)
    platforms: list[str] = Field(default_factory=list)
    parent_platforms: list[str] = Field(default_factory=list, alias="parentPlatforms")
    tags: list[str] = Field(default_factory=list)
    released_from: str | None = Field(default=None, alias="releasedFrom")
    released_to: str | None = Field(default=None, alias="releasedTo")
    page: int = 1
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, alias="pageSize")

    def for_page(self, page: int) -> "CanonicalFilters":
        """Copy of these filters pointing at another page."""
        return self.model_copy(update={"page": page}, deep=True)


class DatasetRecord(BaseModel):
    """A page record or an aggregate record, depending on where it is stored."""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    filters: CanonicalFilters
    page: int
    total_pages: int = Field(alias="totalPages")
    fetched_at: AwareDatetime = Field(alias="fetchedAt")
    expires_at: AwareDatetime = Field(alias="expiresAt")
    items: list[GameSummary]
    version: str = DATASET_VERSION
