"""Aggregate dataset cache: page records, merged aggregates and reads.

Resolution of one filter set:
1. Load (or fetch) the requested page; its totalPages bounds the loop
2. Load (or fetch) every other page 1..totalPages independently; a fresh
   cached page is never re-fetched
3. Concatenate in page order and dedupe by item id (first occurrence wins)
4. Take fetchedAt/expiresAt from the most recently fetched page
5. Persist the aggregate under the bare dataset key

Any page failure aborts the resolve before the aggregate is written, so a
partial aggregate is never persisted. Stale data is repaired lazily on read;
there is no background refresh.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Literal

from gamedata.errors import DatasetNotFoundError
from gamedata.models import DATASET_VERSION, CanonicalFilters, DatasetRecord, GameSummary
from gamedata.schemas.datasets import FetchFilters
from gamedata.services.filters import build_dataset_key, build_page_key
from gamedata.services.jsonquery import compile_query
from gamedata.services.platforms import resolve_filter_ids
from gamedata.services.rawg_client import RawgClient
from gamedata.settings import get_settings
from gamedata.stores.records import KeyValueStore, RecordCache, should_refresh

logger = logging.getLogger("uvicorn.error")

CacheStatus = Literal["hit", "miss", "refresh"]


def dataset_cache(store: KeyValueStore) -> RecordCache[DatasetRecord]:
    return RecordCache(
        store,
        DatasetRecord,
        version=DATASET_VERSION,
        ttl_seconds=get_settings().dataset_ttl_seconds,
    )


async def load_dataset(store: KeyValueStore, dataset_key: str) -> DatasetRecord | None:
    """Read the aggregate record for ``dataset_key`` without refreshing it."""
    return await dataset_cache(store).load(dataset_key)


def dedupe_items(items: list[GameSummary]) -> list[GameSummary]:
    """Drop repeated ids; the first occurrence (lowest page) wins."""
    seen: dict[int, GameSummary] = {}
    for item in items:
        if item.id not in seen:
            seen[item.id] = item
    return list(seen.values())


def merge_pages(
    dataset_key: str,
    canonical: CanonicalFilters,
    pages: list[DatasetRecord],
) -> DatasetRecord:
    """Merge page records (any order) into one aggregate record."""
    if not pages:
        raise ValueError("Cannot merge an empty page list")

    ordered = sorted(pages, key=lambda record: record.page)
    freshest = ordered[0]
    for record in ordered[1:]:
        if record.fetched_at > freshest.fetched_at:
            freshest = record

    items = dedupe_items([item for record in ordered for item in record.items])
    return DatasetRecord(
        key=dataset_key,
        filters=canonical,
        page=canonical.page,
        total_pages=len(ordered),
        fetched_at=freshest.fetched_at,
        expires_at=freshest.expires_at,
        items=items,
    )


class _PageLoader:
    """Loads page records for one resolve call.

    Platform ids are resolved at most once, and only if a page actually
    needs to be fetched.
    """

    def __init__(
        self,
        store: KeyValueStore,
        client: RawgClient,
        dataset_key: str,
        canonical: CanonicalFilters,
        now: datetime | None,
    ):
        self.cache = dataset_cache(store)
        self.store = store
        self.client = client
        self.dataset_key = dataset_key
        self.canonical = canonical
        self.now = now
        self._ids: tuple[list[str], list[str]] | None = None

    async def _filter_ids(self) -> tuple[list[str], list[str]]:
        if self._ids is None:
            self._ids = await resolve_filter_ids(self.store, self.client, self.canonical)
        return self._ids

    async def load(self, page: int, *, force: bool = False) -> DatasetRecord:
        page_key = build_page_key(self.dataset_key, page)
        record = await self.cache.load(page_key)
        cache_hit = record is not None
        needs_fetch = record is None or force or should_refresh(record, self.now)

        if needs_fetch:
            platform_ids, parent_platform_ids = await self._filter_ids()
            record = await self.client.fetch_page(
                self.dataset_key,
                self.canonical.for_page(page),
                platform_ids=platform_ids,
                parent_platform_ids=parent_platform_ids,
                now=self.now,
            )
            await self.cache.save(page_key, record)

        logger.info(
            f"[datasets] dataset_page_resolved datasetKey={self.dataset_key} page={page} "
            f"cacheHit={cache_hit} refreshed={needs_fetch} items={len(record.items)}"
        )
        return record


async def load_dataset_page(
    store: KeyValueStore,
    client: RawgClient,
    dataset_key: str,
    canonical: CanonicalFilters,
    page: int,
    *,
    force: bool = False,
    now: datetime | None = None,
) -> DatasetRecord:
    """Return one page record, fetching it when missing, stale or forced."""
    loader = _PageLoader(store, client, dataset_key, canonical, now)
    return await loader.load(page, force=force)


async def resolve_dataset(
    store: KeyValueStore,
    client: RawgClient,
    dataset_key: str,
    canonical: CanonicalFilters,
    *,
    force: bool = False,
    now: datetime | None = None,
) -> DatasetRecord:
    """Build (or rebuild) and persist the aggregate for one filter set.

    Args:
        store: Key-value store holding page and aggregate records.
        client: RAWG client used for missing/stale pages.
        dataset_key: Key derived from ``canonical``.
        canonical: Canonical filters; ``page`` is the page fetched first.
        force: Re-fetch the requested page even if its cached copy is fresh.
        now: Clock override for freshness checks and timestamps.

    Raises:
        FilterTooBroadError: Upstream count above the hard ceiling.
        UpstreamError: A page could not be fetched; nothing is persisted.
        ConfigurationError: RAWG_API_KEY missing.
    """
    loader = _PageLoader(store, client, dataset_key, canonical, now)
    first = await loader.load(canonical.page, force=force)

    logger.info(
        f"[datasets] aggregate_dataset_start datasetKey={dataset_key} "
        f"totalPages={first.total_pages} cachedPage={first.page}"
    )

    pages: dict[int, DatasetRecord] = {first.page: first}
    for page in range(1, first.total_pages + 1):
        if page not in pages:
            pages[page] = await loader.load(page)

    aggregate = merge_pages(dataset_key, canonical, list(pages.values()))
    await loader.cache.save(dataset_key, aggregate)

    logger.info(
        f"[datasets] aggregate_dataset_complete datasetKey={dataset_key} "
        f"pagesAggregated={len(pages)} totalItems={len(aggregate.items)}"
    )
    return aggregate


@dataclass(frozen=True)
class FetchResult:
    dataset: DatasetRecord
    cache_status: CacheStatus


async def fetch_dataset(
    store: KeyValueStore,
    client: RawgClient,
    filters: FetchFilters,
    *,
    force: bool = False,
    now: datetime | None = None,
) -> FetchResult:
    """Return the aggregate for ``filters``, resolving it when needed.

    cacheStatus is "hit" for a fresh cached aggregate, "miss" when nothing
    was cached, "refresh" when a cached aggregate was stale or forced.
    """
    dataset_key = build_dataset_key(filters)
    cached = await load_dataset(store, dataset_key.key)

    if cached is not None and not force and not should_refresh(cached, now):
        status: CacheStatus = "hit"
        dataset = cached
    else:
        status = "miss" if cached is None else "refresh"
        dataset = await resolve_dataset(
            store,
            client,
            dataset_key.key,
            dataset_key.canonical,
            force=force,
            now=now,
        )

    logger.info(
        f"[datasets] fetch_dataset datasetKey={dataset_key.key} cacheStatus={status} "
        f"pages={dataset.total_pages} totalItems={len(dataset.items)}"
    )
    return FetchResult(dataset=dataset, cache_status=status)


async def get_dataset_for_read(
    store: KeyValueStore,
    client: RawgClient,
    dataset_id: str,
    *,
    fresh: bool = False,
    now: datetime | None = None,
) -> DatasetRecord:
    """Load an aggregate by id, re-resolving it when stale or ``fresh``.

    Raises:
        DatasetNotFoundError: No aggregate is cached under ``dataset_id``.
    """
    dataset = await load_dataset(store, dataset_id)
    if dataset is None:
        raise DatasetNotFoundError(dataset_id)

    if fresh or should_refresh(dataset, now):
        dataset = await resolve_dataset(store, client, dataset.key, dataset.filters, force=fresh, now=now)
    return dataset


def export_items(dataset: DatasetRecord) -> list[dict[str, Any]]:
    """Items as plain JSON-compatible dicts."""
    return [item.model_dump(mode="json") for item in dataset.items]


@dataclass(frozen=True)
class QueryResult:
    dataset: DatasetRecord
    items_processed: int
    value: Any


async def run_query(
    store: KeyValueStore,
    client: RawgClient,
    dataset_id: str,
    query: str,
    *,
    fresh: bool = False,
    now: datetime | None = None,
) -> QueryResult:
    """Run a JSON Query expression against ``{"items": [...]}`` of a dataset.

    The query is compiled before the dataset is read, so a malformed query
    never triggers an upstream refresh.
    """
    compiled = compile_query(query)
    dataset = await get_dataset_for_read(store, client, dataset_id, fresh=fresh, now=now)

    value = compiled.evaluate({"items": export_items(dataset)})
    logger.info(
        f"[query] run_query datasetId={dataset_id} itemsProcessed={len(dataset.items)} "
        f"resultType={type(value).__name__}"
    )
    return QueryResult(dataset=dataset, items_processed=len(dataset.items), value=value)
