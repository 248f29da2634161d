#!/usr/bin/env python3
"""Cache warm-up job for cron.

Schedule:
- Run a bit more often than DATASET_TTL_SECONDS so the listed datasets never
  go cold.

Behavior (cost-controlled):
- For each configured filter set, resolve its dataset through the same path
  as POST /v1/datasets/fetch: fresh pages are reused, only missing/stale pages
  hit RAWG
- A filter set that is too broad or fails upstream is reported and skipped;
  the remaining sets still run

Run (local / cron):
  cd services/api
  python -m scripts.warm_datasets

Optional env vars:
  WARM_FILTER_SETS='[{"genres": ["action"], "parentPlatforms": ["pc"]}, {"tags": ["multiplayer"]}]'
  WARM_FORCE=1
"""

import asyncio
import json
import os
import sys


# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gamedata.errors import GameDataError  # noqa: E402
from gamedata.schemas import FetchFilters  # noqa: E402
from gamedata.services.datasets import fetch_dataset  # noqa: E402
from gamedata.services.rawg_client import RawgClient  # noqa: E402
from gamedata.stores.records import KeyValueStore  # noqa: E402
from gamedata.stores.redis import RedisKeyValueStore, close_redis, init_redis  # noqa: E402

DEFAULT_FILTER_SETS: list[dict] = [
    {"genres": ["action"], "parentPlatforms": ["pc"], "releasedFrom": "2023-01-01"},
    {"genres": ["role-playing-games-rpg"], "releasedFrom": "2023-01-01"},
    {"tags": ["multiplayer"], "parentPlatforms": ["playstation"], "releasedFrom": "2024-01-01"},
]


def _parse_filter_sets_env(name: str, default: list[dict]) -> list[FetchFilters]:
    raw = os.getenv(name, "")
    entries = json.loads(raw) if raw.strip() else default
    if not isinstance(entries, list):
        raise ValueError(f"{name} must be a JSON array of filter objects")
    return [FetchFilters.model_validate(entry) for entry in entries]


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes"}


async def warm(store: KeyValueStore, client: RawgClient, filter_sets: list[FetchFilters], force: bool) -> dict:
    results: list[dict] = []
    for filters in filter_sets:
        try:
            result = await fetch_dataset(store, client, filters, force=force)
        except GameDataError as e:
            results.append({"filters": filters.model_dump(by_alias=True, exclude_none=True), "error": e.code})
            continue
        results.append(
            {
                "datasetId": result.dataset.key,
                "cacheStatus": result.cache_status,
                "totalPages": result.dataset.total_pages,
                "totalItems": len(result.dataset.items),
            }
        )
    return {
        "ok": all("error" not in r for r in results),
        "datasets": results,
    }


async def main() -> None:
    # Same connection setup as the API lifespan, but for a one-off cron run.
    await init_redis()
    client = RawgClient()

    try:
        filter_sets = _parse_filter_sets_env("WARM_FILTER_SETS", DEFAULT_FILTER_SETS)
        summary = await warm(RedisKeyValueStore(), client, filter_sets, force=_env_flag("WARM_FORCE"))

        # Final output for cron logs (single JSON-ish blob)
        print(summary)
    finally:
        await client.close()
        await close_redis()


if __name__ == "__main__":
    asyncio.run(main())
