"""Platform name -> RAWG id resolution.

Platforms:
- Resolved against the global platform directory (GET /platforms), cached
  as one record under rawg:platforms:v1 with its own TTL (hours, not the
  dataset TTL), refreshed lazily when stale or invalid
- Numeric values pass through unchanged

Parent platforms:
- Static lookup table, no network call

Unresolvable values are logged and dropped.
"""

from datetime import datetime, timedelta, timezone
import logging

from gamedata.models import PLATFORM_CACHE_VERSION, PLATFORM_DIRECTORY_KEY, CanonicalFilters, PlatformDirectoryRecord
from gamedata.services.filters import normalize_filter_value
from gamedata.services.rawg_client import RawgClient
from gamedata.settings import get_settings
from gamedata.stores.records import KeyValueStore, RecordCache, should_refresh

logger = logging.getLogger("uvicorn.error")

PARENT_PLATFORM_SLUG_TO_ID: dict[str, str] = {
    "pc": "1",
    "windows": "1",
    "playstation": "2",
    "ps": "2",
    "xbox": "3",
    "ios": "4",
    "mac": "5",
    "apple-macintosh": "5",
    "linux": "6",
    "nintendo": "7",
    "android": "8",
    "atari": "9",
    "amiga": "10",
    "commodore-amiga": "10",
    "sega": "11",
    "3do": "12",
    "neo-geo": "13",
    "web": "14",
    "browser": "14",
}


def platform_directory_cache(store: KeyValueStore) -> RecordCache[PlatformDirectoryRecord]:
    return RecordCache(
        store,
        PlatformDirectoryRecord,
        version=PLATFORM_CACHE_VERSION,
        ttl_seconds=get_settings().platform_cache_ttl_seconds,
    )


async def get_platform_directory(
    store: KeyValueStore,
    client: RawgClient,
    *,
    now: datetime | None = None,
) -> PlatformDirectoryRecord:
    """Return the cached platform directory, refreshing it when stale."""
    cache = platform_directory_cache(store)
    cached = await cache.load(PLATFORM_DIRECTORY_KEY)
    if cached is not None and not should_refresh(cached, now):
        return cached

    logger.info(f"[platforms] directory_refresh cached={cached is not None}")
    platforms = await client.fetch_platforms()
    now = now or datetime.now(timezone.utc)
    record = PlatformDirectoryRecord(
        fetched_at=now,
        expires_at=now + timedelta(seconds=cache.ttl_seconds),
        platforms=platforms,
    )
    await cache.save(PLATFORM_DIRECTORY_KEY, record)
    return record


def resolve_platform_ids(values: list[str], directory: PlatformDirectoryRecord) -> list[str]:
    """Map platform slugs/names to RAWG ids, preserving first-seen order."""
    slug_map: dict[str, str] = {}
    for platform in directory.platforms:
        platform_id = str(platform.id)
        slug_map[normalize_filter_value(platform.slug)] = platform_id
        slug_map[platform.slug.lower()] = platform_id
        slug_map[normalize_filter_value(platform.name)] = platform_id

    return _resolve(values, slug_map, event="unresolved_platform")


def resolve_parent_platform_ids(values: list[str]) -> list[str]:
    return _resolve(values, PARENT_PLATFORM_SLUG_TO_ID, event="unresolved_parent_platform")


def _resolve(values: list[str], lookup: dict[str, str], event: str) -> list[str]:
    # dict keeps insertion order and drops duplicate ids
    resolved: dict[str, None] = {}
    for value in values:
        trimmed = value.strip()
        if not trimmed:
            continue
        if trimmed.isdigit():
            resolved[trimmed] = None
            continue
        resolved_id = lookup.get(normalize_filter_value(trimmed)) or lookup.get(trimmed.lower())
        if resolved_id:
            resolved[resolved_id] = None
        else:
            logger.warning(f"[platforms] {event} input={trimmed!r}")
    return list(resolved)


async def resolve_filter_ids(
    store: KeyValueStore,
    client: RawgClient,
    canonical: CanonicalFilters,
) -> tuple[list[str], list[str]]:
    """Resolve (platform_ids, parent_platform_ids) for a canonical filter set.

    The directory is only loaded when platform filters are present.
    """
    platform_ids: list[str] = []
    if canonical.platforms:
        directory = await get_platform_directory(store, client)
        platform_ids = resolve_platform_ids(canonical.platforms, directory)
    parent_platform_ids = resolve_parent_platform_ids(canonical.parent_platforms)
    return platform_ids, parent_platform_ids
