"""Filter canonicalization and dataset keys.

Dataset identity:
- Canonicalize a caller's filters (split comma-joined values, normalize,
  sort, drop unsupported tags, pin pageSize)
- Hash the canonical JSON with SHA-256 and namespace it:
  rawg:games:v1:<hex digest>

Two filter sets that differ only in ordering, casing or comma grouping
always map to the same key.
"""

import hashlib
import json
import re
from dataclasses import dataclass

from gamedata.models import DATASET_NAMESPACE_PREFIX, DEFAULT_PAGE_SIZE, CanonicalFilters
from gamedata.schemas.datasets import FetchFilters

SUPPORTED_TAGS: tuple[dict[str, str], ...] = (
    {"slug": "singleplayer", "description": "Focus on solo play experiences."},
    {"slug": "multiplayer", "description": "Supports cooperative or competitive multiplayer."},
    {"slug": "exclusive", "description": "Titles limited to a specific platform or ecosystem."},
)

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class DatasetKey:
    key: str
    canonical: CanonicalFilters
    hash: str


def normalize_filter_value(value: str) -> str:
    """Normalize a filter value: trim, lowercase, whitespace runs -> "-".

    Example:
        >>> normalize_filter_value("  Nintendo   Switch ")
        "nintendo-switch"
    """
    return _WHITESPACE_RE.sub("-", value.strip().lower())


def expand_filter_values(values: list[str] | None) -> list[str]:
    """Split comma-joined tokens into separate trimmed, non-empty values."""
    if not values:
        return []
    expanded: list[str] = []
    for value in values:
        expanded.extend(chunk.strip() for chunk in value.split(",") if chunk.strip())
    return expanded


def _canonical_list(values: list[str] | None) -> list[str]:
    return sorted(normalize_filter_value(v) for v in expand_filter_values(values))


def supported_tag_slugs() -> set[str]:
    return {normalize_filter_value(tag["slug"]) for tag in SUPPORTED_TAGS}


def canonicalize_filters(filters: FetchFilters) -> CanonicalFilters:
    """Build the canonical filter set used for cache identity.

    ``pageSize`` from the caller is ignored: it is pinned to
    DEFAULT_PAGE_SIZE so arbitrary paging can't multiply cache keys.
    """
    allowed_tags = supported_tag_slugs()
    tags = sorted(
        tag
        for tag in (normalize_filter_value(v) for v in expand_filter_values(filters.tags))
        if tag in allowed_tags
    )

    return CanonicalFilters(
        genres=_canonical_list(filters.genres),
        platforms=_canonical_list(filters.platforms),
        parent_platforms=_canonical_list(filters.parent_platforms),
        tags=tags,
        released_from=filters.released_from,
        released_to=filters.released_to,
        page=filters.page or 1,
        page_size=DEFAULT_PAGE_SIZE,
    )


def canonical_json(canonical: CanonicalFilters) -> str:
    """Stable JSON for hashing: model field order, absent date bounds omitted."""
    payload = canonical.model_dump(by_alias=True, exclude_none=True)
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def derive_dataset_key(canonical: CanonicalFilters) -> tuple[str, str]:
    """Compute (dataset_key, hash) from canonical filters. Pure function."""
    digest = hashlib.sha256(canonical_json(canonical).encode("utf-8")).hexdigest()
    return f"{DATASET_NAMESPACE_PREFIX}:{digest}", digest


def build_dataset_key(filters: FetchFilters) -> DatasetKey:
    canonical = canonicalize_filters(filters)
    key, digest = derive_dataset_key(canonical)
    return DatasetKey(key=key, canonical=canonical, hash=digest)


def build_page_key(dataset_key: str, page: int) -> str:
    return f"{dataset_key}:p{page}"
