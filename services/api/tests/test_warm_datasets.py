import pytest

from fakes import FakeRawg, make_game
from gamedata.schemas import FetchFilters
from scripts.warm_datasets import _parse_filter_sets_env, warm


def test_parse_filter_sets_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("WARM_FILTER_SETS", '[{"genres": "action"}, {"parentPlatforms": ["pc"]}]')
    filter_sets = _parse_filter_sets_env("WARM_FILTER_SETS", [])
    assert [f.genres for f in filter_sets] == [["action"], None]
    assert filter_sets[1].parent_platforms == ["pc"]


def test_parse_filter_sets_env_default(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("WARM_FILTER_SETS", raising=False)
    assert _parse_filter_sets_env("WARM_FILTER_SETS", [{"tags": ["multiplayer"]}])[0].tags == ["multiplayer"]


@pytest.mark.asyncio
async def test_warm_reports_each_filter_set(store, make_client):
    fake = FakeRawg(games_pages={1: [make_game(1), make_game(2)]})
    client = make_client(fake)

    summary = await warm(store, client, [FetchFilters(genres=["action"])], force=False)
    assert summary["ok"] is True
    assert summary["datasets"][0]["cacheStatus"] == "miss"
    assert summary["datasets"][0]["totalItems"] == 2

    again = await warm(store, client, [FetchFilters(genres=["action"])], force=False)
    assert again["datasets"][0]["cacheStatus"] == "hit"


@pytest.mark.asyncio
async def test_warm_continues_after_a_failure(store, make_client):
    fake = FakeRawg(games_pages={1: [make_game(1)]}, count=50_000)
    client = make_client(fake)

    summary = await warm(store, client, [FetchFilters(genres=["action"]), FetchFilters(genres=["rpg"])], force=False)
    assert summary["ok"] is False
    assert [d["error"] for d in summary["datasets"]] == ["FILTER_TOO_BROAD", "FILTER_TOO_BROAD"]
