"""Tests for the RAWG client (params, retries, ceiling, page math)."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from gamedata.errors import ConfigurationError, FilterTooBroadError, UpstreamError
from gamedata.models import CanonicalFilters
from fakes import FakeRawg, make_game

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_fetch_page_builds_params_and_record(make_client):
    fake = FakeRawg(games_pages={2: [make_game(1), make_game(2)]}, count=125)
    client = make_client(fake, dataset_ttl_seconds=3600)
    canonical = CanonicalFilters(
        genres=["action", "rpg"],
        platforms=["pc"],
        parent_platforms=["playstation"],
        tags=["multiplayer"],
        released_from="2020-01-01",
        released_to="2020-12-31",
        page=2,
    )

    record = await client.fetch_page("rawg:games:v1:k", canonical, platform_ids=["4"], parent_platform_ids=["2"], now=NOW)

    params = fake.requests[0].url.params
    assert params["key"] == "test-key"
    assert params["page"] == "2"
    assert params["page_size"] == "40"
    assert params["genres"] == "action,rpg"
    assert params["platforms"] == "4"
    assert params["parent_platforms"] == "2"
    assert params["tags"] == "multiplayer"
    assert params["dates"] == "2020-01-01,2020-12-31"

    assert record.page == 2
    assert record.total_pages == 4
    assert record.fetched_at == NOW
    assert record.expires_at == NOW + timedelta(hours=1)
    assert [item.id for item in record.items] == [1, 2]
    await client.close()


@pytest.mark.asyncio
async def test_missing_date_bounds_are_filled(make_client):
    fake = FakeRawg(games_pages={1: []}, count=0)
    client = make_client(fake)

    await client.fetch_page("k", CanonicalFilters(released_to="2001-01-01"))
    assert fake.requests[0].url.params["dates"] == "1900-01-01,2001-01-01"


@pytest.mark.asyncio
async def test_no_dates_param_without_bounds(make_client):
    fake = FakeRawg(games_pages={1: []}, count=0)
    client = make_client(fake)

    record = await client.fetch_page("k", CanonicalFilters())
    assert "dates" not in fake.requests[0].url.params
    # Zero results still yields one page.
    assert record.total_pages == 1


@pytest.mark.asyncio
async def test_total_pages_never_below_requested_page(make_client):
    fake = FakeRawg(games_pages={5: []}, count=10)
    client = make_client(fake)

    record = await client.fetch_page("k", CanonicalFilters(page=5))
    assert record.total_pages == 5


@pytest.mark.asyncio
async def test_count_above_ceiling_raises(make_client):
    fake = FakeRawg(games_pages={1: [make_game(1)]}, count=5000)
    client = make_client(fake, result_hard_limit=1000)

    with pytest.raises(FilterTooBroadError) as exc_info:
        await client.fetch_page("k", CanonicalFilters())

    assert exc_info.value.count == 5000
    assert exc_info.value.limit == 1000
    assert "5000" in exc_info.value.message
    assert "add filters" in exc_info.value.message


@pytest.mark.asyncio
async def test_missing_api_key_raises_configuration_error(make_client):
    fake = FakeRawg()
    client = make_client(fake, api_key="")

    with pytest.raises(ConfigurationError):
        await client.fetch_page("k", CanonicalFilters())
    assert fake.requests == []


@pytest.mark.asyncio
async def test_transient_errors_are_retried(make_client):
    fake = FakeRawg(games_pages={1: [make_game(1)]}, count=1)
    failures = iter([httpx.Response(503, text="busy"), httpx.Response(429, text="slow down")])
    fake.responders.append(lambda request: next(failures, None))
    client = make_client(fake)

    record = await client.fetch_page("k", CanonicalFilters())
    assert len(fake.requests) == 3
    assert record.items[0].id == 1


@pytest.mark.asyncio
async def test_retries_are_capped(make_client):
    fake = FakeRawg()
    fake.responders.append(lambda request: httpx.Response(500, text="boom"))
    client = make_client(fake, retry_waits=[0.0, 0.0])

    with pytest.raises(UpstreamError) as exc_info:
        await client.fetch_page("k", CanonicalFilters())
    assert exc_info.value.status == 500
    assert len(fake.requests) == 2
    # The key is never echoed back in error details.
    assert "test-key" not in (exc_info.value.url or "")


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(make_client):
    fake = FakeRawg()
    fake.responders.append(lambda request: httpx.Response(401, json={"error": "bad key"}))
    client = make_client(fake)

    with pytest.raises(UpstreamError) as exc_info:
        await client.fetch_page("k", CanonicalFilters())
    assert exc_info.value.status == 401
    assert len(fake.requests) == 1


@pytest.mark.asyncio
async def test_unparsable_body_raises_upstream_error(make_client):
    fake = FakeRawg()
    fake.responders.append(lambda request: httpx.Response(200, text="<html>oops</html>"))
    client = make_client(fake)

    with pytest.raises(UpstreamError, match="not JSON"):
        await client.fetch_page("k", CanonicalFilters())


@pytest.mark.asyncio
async def test_timeouts_are_retried(make_client):
    fake = FakeRawg(games_pages={1: [make_game(1)]}, count=1)
    calls = {"n": 0}

    def flaky(request: httpx.Request) -> httpx.Response | None:
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ReadTimeout("timed out", request=request)
        return None

    fake.responders.append(flaky)
    client = make_client(fake)

    record = await client.fetch_page("k", CanonicalFilters())
    assert record.items[0].id == 1
    assert calls["n"] == 2


def _guard_request_count(fake: FakeRawg, limit: int) -> None:
    def guard(request: httpx.Request) -> httpx.Response | None:
        if len(fake.requests) > limit:
            pytest.fail(f"too many upstream requests: {len(fake.requests)}")
        return None

    fake.responders.append(guard)


@pytest.mark.asyncio
async def test_fetch_platforms_follows_next_links(make_client):
    fake = FakeRawg()
    _guard_request_count(fake, 5)

    def paged(request: httpx.Request) -> httpx.Response | None:
        if not request.url.path.endswith("/platforms"):
            return None
        if request.url.params.get("page", "1") == "1":
            return httpx.Response(
                200,
                json={
                    "count": 41,
                    "next": "https://rawg.test/api/platforms?key=test-key&page=2&page_size=40",
                    "results": [{"id": 4, "slug": "pc", "name": "PC"}],
                },
            )
        return httpx.Response(
            200,
            json={"count": 41, "next": None, "results": [{"id": 7, "slug": "nintendo-switch", "name": "Nintendo Switch"}]},
        )

    fake.responders.append(paged)
    client = make_client(fake)

    platforms = await client.fetch_platforms()
    assert [p.id for p in platforms] == [4, 7]
    assert len(fake.requests) == 2
    second = fake.requests[1].url
    assert second.params["page"] == "2"
    assert second.params["page_size"] == "40"
    assert second.params["key"] == "test-key"


@pytest.mark.asyncio
async def test_fetch_platforms_stops_at_page_cap(make_client):
    fake = FakeRawg()
    _guard_request_count(fake, 5)

    def looping(request: httpx.Request) -> httpx.Response | None:
        if not request.url.path.endswith("/platforms"):
            return None
        return httpx.Response(
            200,
            json={
                "count": 41,
                "next": "https://rawg.test/api/platforms?page=2",
                "results": [{"id": 4, "slug": "pc", "name": "PC"}],
            },
        )

    fake.responders.append(looping)
    client = make_client(fake)

    platforms = await client.fetch_platforms()
    assert len(fake.requests) == 2
    assert len(platforms) == 2
