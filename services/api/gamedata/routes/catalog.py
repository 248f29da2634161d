"""Catalog lookups.

GET /v1/catalog/tags      - Supported tag allow-list
GET /v1/catalog/platforms - Cached RAWG platform directory
"""

from fastapi import APIRouter, Depends

from gamedata.schemas import PlatformsResponse, TagInfo, TagsResponse
from gamedata.services.filters import SUPPORTED_TAGS
from gamedata.services.platforms import get_platform_directory
from gamedata.services.rawg_client import RawgClient, get_rawg_client
from gamedata.stores.records import KeyValueStore
from gamedata.stores.redis import get_kv_store

router = APIRouter()


@router.get("/tags", response_model=TagsResponse)
async def list_tags() -> TagsResponse:
    """Tags accepted by /v1/datasets/fetch; others are dropped silently."""
    return TagsResponse(tags=[TagInfo(**tag) for tag in SUPPORTED_TAGS])


@router.get("/platforms", response_model=PlatformsResponse)
async def list_platforms(
    store: KeyValueStore = Depends(get_kv_store),
    client: RawgClient = Depends(get_rawg_client),
) -> PlatformsResponse:
    directory = await get_platform_directory(store, client)
    return PlatformsResponse(
        fetched_at=directory.fetched_at,
        expires_at=directory.expires_at,
        platforms=directory.platforms,
    )
