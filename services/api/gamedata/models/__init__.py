"""Pydantic models for records persisted in the cache store.

Records:
- games: RAWG game summaries (items of a dataset)
- datasets: page records and merged aggregate records
- platforms: the global platform directory
"""

from gamedata.models.dataset import (
    DATASET_NAMESPACE_PREFIX,
    DATASET_VERSION,
    DEFAULT_PAGE_SIZE,
    CanonicalFilters,
    DatasetRecord,
)
from gamedata.models.game import GameSummary, Genre, PlatformEntry, PlatformInfo
from gamedata.models.platform import (
    PLATFORM_CACHE_VERSION,
    PLATFORM_DIRECTORY_KEY,
    PlatformDirectoryRecord,
)

__all__ = [
    "DATASET_NAMESPACE_PREFIX",
    "DATASET_VERSION",
    "DEFAULT_PAGE_SIZE",
    "PLATFORM_CACHE_VERSION",
    "PLATFORM_DIRECTORY_KEY",
    "CanonicalFilters",
    "DatasetRecord",
    "GameSummary",
    "Genre",
    "PlatformDirectoryRecord",
    "PlatformEntry",
    "PlatformInfo",
]
