"""Tests for dataset resolution, aggregation and reads."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from fakes import FakeRawg, make_game
from gamedata.errors import DatasetNotFoundError, FilterTooBroadError, QueryError, UpstreamError
from gamedata.models import CanonicalFilters, DatasetRecord, GameSummary
from gamedata.schemas import FetchFilters
from gamedata.services.datasets import (
    dedupe_items,
    fetch_dataset,
    get_dataset_for_read,
    load_dataset,
    merge_pages,
    resolve_dataset,
    run_query,
)
from gamedata.services.filters import build_dataset_key, build_page_key
from gamedata.stores.records import encode_record

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _pages(count: int, page_size: int = 40) -> dict[int, list[dict]]:
    """Split ids 1..count into RAWG-sized pages."""
    ids = list(range(1, count + 1))
    return {i // page_size + 1: [make_game(n) for n in ids[i : i + page_size]] for i in range(0, count, page_size)}


def _page_record(key: str, page: int, ids: list[int], fetched_at: datetime, **overrides) -> DatasetRecord:
    fields = {
        "key": key,
        "filters": CanonicalFilters(page=page),
        "page": page,
        "total_pages": 2,
        "fetched_at": fetched_at,
        "expires_at": fetched_at + timedelta(hours=1),
        "items": [GameSummary(id=i, slug=f"g{i}", name=f"Game {i}") for i in ids],
    }
    fields.update(overrides)
    return DatasetRecord(**fields)


def test_dedupe_items_first_occurrence_wins():
    items = [
        GameSummary(id=1, slug="a", name="first"),
        GameSummary(id=2, slug="b", name="B"),
        GameSummary(id=1, slug="a", name="second"),
    ]
    deduped = dedupe_items(items)
    assert [(i.id, i.name) for i in deduped] == [(1, "first"), (2, "B")]


def test_merge_pages_orders_dedupes_and_takes_freshest_timestamps():
    older = _page_record("k", 1, [1, 2, 3], NOW)
    newer = _page_record("k", 2, [3, 4], NOW + timedelta(minutes=5))

    aggregate = merge_pages("k", CanonicalFilters(), [newer, older])

    assert [i.id for i in aggregate.items] == [1, 2, 3, 4]
    assert aggregate.total_pages == 2
    assert aggregate.fetched_at == newer.fetched_at
    assert aggregate.expires_at == newer.expires_at


@pytest.mark.asyncio
async def test_resolve_fetches_every_page_and_persists(store, make_client):
    fake = FakeRawg(games_pages=_pages(125))
    client = make_client(fake)
    key = build_dataset_key(FetchFilters(genres=["action"]))

    aggregate = await resolve_dataset(store, client, key.key, key.canonical, now=NOW)

    assert aggregate.total_pages == 4
    assert len(aggregate.items) == 125
    assert len({i.id for i in aggregate.items}) == 125
    assert [r.url.params["page"] for r in fake.games_requests()] == ["1", "2", "3", "4"]
    for page in range(1, 5):
        assert build_page_key(key.key, page) in store.data
    assert store.ttls[key.key] == 3600
    assert await load_dataset(store, key.key) == aggregate


@pytest.mark.asyncio
async def test_overlapping_pages_yield_unique_ids(store, make_client):
    pages = _pages(80)
    # Upstream order shifted between requests: page 2 repeats two page-1 items.
    pages[2] = [make_game(39, name="shifted"), make_game(40)] + pages[2][2:]
    fake = FakeRawg(games_pages=pages, count=80)
    client = make_client(fake)
    key = build_dataset_key(FetchFilters())

    aggregate = await resolve_dataset(store, client, key.key, key.canonical, now=NOW)

    ids = [i.id for i in aggregate.items]
    assert len(ids) == len(set(ids)) == 78
    assert next(i for i in aggregate.items if i.id == 39).name == "Game 39"


@pytest.mark.asyncio
async def test_fresh_pages_are_not_refetched(store, make_client):
    fake = FakeRawg(games_pages=_pages(80))
    client = make_client(fake)
    key = build_dataset_key(FetchFilters())
    cached_page = _page_record(key.key, 2, [41, 42], NOW, filters=key.canonical.for_page(2))
    await store.put(build_page_key(key.key, 2), encode_record(cached_page), 3600)

    aggregate = await resolve_dataset(store, client, key.key, key.canonical, now=NOW + timedelta(minutes=1))

    assert [r.url.params["page"] for r in fake.games_requests()] == ["1"]
    assert [i.id for i in aggregate.items][-2:] == [41, 42]


@pytest.mark.asyncio
async def test_stale_pages_are_refetched(store, make_client):
    fake = FakeRawg(games_pages=_pages(80))
    client = make_client(fake)
    key = build_dataset_key(FetchFilters())
    stale_page = _page_record(key.key, 2, [41], NOW - timedelta(hours=2), filters=key.canonical.for_page(2))
    await store.put(build_page_key(key.key, 2), encode_record(stale_page), 3600)

    aggregate = await resolve_dataset(store, client, key.key, key.canonical, now=NOW)

    assert [r.url.params["page"] for r in fake.games_requests()] == ["1", "2"]
    assert len(aggregate.items) == 80


@pytest.mark.asyncio
async def test_too_broad_stops_before_second_page(store, make_client):
    fake = FakeRawg(games_pages=_pages(80), count=50_000)
    client = make_client(fake)
    key = build_dataset_key(FetchFilters())

    with pytest.raises(FilterTooBroadError):
        await resolve_dataset(store, client, key.key, key.canonical, now=NOW)

    assert [r.url.params["page"] for r in fake.games_requests()] == ["1"]
    assert store.data == {}


@pytest.mark.asyncio
async def test_page_failure_persists_no_aggregate(store, make_client):
    fake = FakeRawg(games_pages=_pages(80))
    fake.responders.append(
        lambda request: httpx.Response(400, text="bad") if request.url.params.get("page") == "2" else None
    )
    client = make_client(fake)
    key = build_dataset_key(FetchFilters())

    with pytest.raises(UpstreamError):
        await resolve_dataset(store, client, key.key, key.canonical, now=NOW)

    assert key.key not in store.data


@pytest.mark.asyncio
async def test_wrong_version_aggregate_is_rebuilt(store, make_client):
    fake = FakeRawg(games_pages=_pages(3))
    client = make_client(fake)
    filters = FetchFilters()
    key = build_dataset_key(filters)
    old = _page_record(key.key, 1, [1], NOW, total_pages=1, version="v0")
    await store.put(key.key, encode_record(old), 3600)

    assert await load_dataset(store, key.key) is None

    result = await fetch_dataset(store, client, filters, now=NOW)
    assert result.cache_status == "miss"
    assert result.dataset.version == "v1"
    assert len(result.dataset.items) == 3


@pytest.mark.asyncio
async def test_fetch_dataset_cache_statuses(store, make_client):
    fake = FakeRawg(games_pages=_pages(3))
    client = make_client(fake)
    filters = FetchFilters(genres=["action"])

    first = await fetch_dataset(store, client, filters, now=NOW)
    second = await fetch_dataset(store, client, filters, now=NOW + timedelta(minutes=10))
    stale = await fetch_dataset(store, client, filters, now=NOW + timedelta(hours=2))
    forced = await fetch_dataset(store, client, filters, force=True, now=NOW + timedelta(hours=2, minutes=1))

    assert [first.cache_status, second.cache_status, stale.cache_status, forced.cache_status] == [
        "miss",
        "hit",
        "refresh",
        "refresh",
    ]
    assert len(fake.games_requests()) == 3


@pytest.mark.asyncio
async def test_get_dataset_for_read_unknown_id(store, make_client):
    with pytest.raises(DatasetNotFoundError):
        await get_dataset_for_read(store, make_client(FakeRawg()), "rawg:games:v1:missing")


@pytest.mark.asyncio
async def test_get_dataset_for_read_refreshes_stale(store, make_client):
    fake = FakeRawg(games_pages=_pages(3))
    client = make_client(fake)
    result = await fetch_dataset(store, client, FetchFilters(), now=NOW)

    refreshed = await get_dataset_for_read(store, client, result.dataset.key, now=NOW + timedelta(hours=1))
    assert refreshed.fetched_at == NOW + timedelta(hours=1)
    assert len(fake.games_requests()) == 2


@pytest.mark.asyncio
async def test_run_query_counts_items(store, make_client):
    fake = FakeRawg(games_pages=_pages(5))
    client = make_client(fake)
    dataset = (await fetch_dataset(store, client, FetchFilters(), now=NOW)).dataset

    result = await run_query(store, client, dataset.key, ".items | size()", now=NOW)
    assert result.items_processed == 5
    assert result.value == 5


@pytest.mark.asyncio
async def test_bad_query_fails_before_any_read(store, make_client):
    fake = FakeRawg()
    client = make_client(fake)

    with pytest.raises(QueryError):
        await run_query(store, client, "rawg:games:v1:missing", ".items | filter(")
    assert fake.requests == []
