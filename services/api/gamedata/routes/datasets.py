"""Dataset endpoints.

POST /v1/datasets/fetch                  - Resolve (fetch or reuse) a dataset for a filter set
GET  /v1/datasets/{datasetId}            - Metadata of a cached dataset
GET  /v1/datasets/{datasetId}/items      - The dataset's items as a JSON array
POST /v1/datasets/{datasetId}/query      - Run a JSON Query expression
POST /v1/datasets/{datasetId}/calculate  - Fixed count/avg/min/max calculation

Routers are thin: call services for business logic. Errors are raised as
GameDataError subclasses and rendered by the app's exception handler.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from gamedata.errors import DatasetNotFoundError
from gamedata.schemas import (
    CalculationRequest,
    CalculationResponse,
    DatasetSummary,
    FetchDatasetRequest,
    FetchDatasetResponse,
    GroupCalculation,
    QueryRequest,
    QueryResponse,
)
from gamedata.services.calculations import run_calculation
from gamedata.services.datasets import (
    export_items,
    fetch_dataset,
    get_dataset_for_read,
    load_dataset,
    run_query,
)
from gamedata.services.rawg_client import RawgClient, get_rawg_client
from gamedata.stores.records import KeyValueStore
from gamedata.stores.redis import get_kv_store

router = APIRouter()


@router.post("/fetch", response_model=FetchDatasetResponse)
async def fetch(
    request: FetchDatasetRequest,
    store: KeyValueStore = Depends(get_kv_store),
    client: RawgClient = Depends(get_rawg_client),
) -> FetchDatasetResponse:
    """Fetch (or reuse) the aggregated dataset for a filter set.

    Returns:
        FetchDatasetResponse; ``datasetId`` is the id for follow-up queries.
    """
    result = await fetch_dataset(store, client, request.filters, force=request.force)
    dataset = result.dataset
    return FetchDatasetResponse(
        dataset_id=dataset.key,
        dataset_key=dataset.key,
        cache_status=result.cache_status,
        total_pages=dataset.total_pages,
        total_items=len(dataset.items),
        fetched_at=dataset.fetched_at,
        expires_at=dataset.expires_at,
        filters=dataset.filters,
    )


@router.get("/{dataset_id}", response_model=DatasetSummary)
async def get_dataset(
    dataset_id: str,
    store: KeyValueStore = Depends(get_kv_store),
) -> DatasetSummary:
    """Metadata of a cached dataset. Never refreshes."""
    dataset = await load_dataset(store, dataset_id)
    if dataset is None:
        raise DatasetNotFoundError(dataset_id)
    return DatasetSummary(
        dataset_id=dataset.key,
        total_pages=dataset.total_pages,
        total_items=len(dataset.items),
        fetched_at=dataset.fetched_at,
        expires_at=dataset.expires_at,
        version=dataset.version,
        filters=dataset.filters,
    )


@router.get("/{dataset_id}/items")
async def get_dataset_items(
    dataset_id: str,
    fresh: bool = Query(default=False, description="Re-resolve the dataset before returning it"),
    store: KeyValueStore = Depends(get_kv_store),
    client: RawgClient = Depends(get_rawg_client),
) -> list[dict[str, Any]]:
    dataset = await get_dataset_for_read(store, client, dataset_id, fresh=fresh)
    return export_items(dataset)


@router.post("/{dataset_id}/query", response_model=QueryResponse)
async def query(
    dataset_id: str,
    request: QueryRequest,
    store: KeyValueStore = Depends(get_kv_store),
    client: RawgClient = Depends(get_rawg_client),
) -> QueryResponse:
    """Run a JSON Query expression against ``{"items": [...]}`` of the dataset."""
    result = await run_query(store, client, dataset_id, request.query, fresh=request.fresh)
    return QueryResponse(
        dataset_id=dataset_id,
        items_processed=result.items_processed,
        value=result.value,
        fetched_at=result.dataset.fetched_at,
        expires_at=result.dataset.expires_at,
    )


@router.post("/{dataset_id}/calculate", response_model=CalculationResponse)
async def calculate(
    dataset_id: str,
    request: CalculationRequest,
    store: KeyValueStore = Depends(get_kv_store),
    client: RawgClient = Depends(get_rawg_client),
) -> CalculationResponse:
    dataset = await get_dataset_for_read(store, client, dataset_id, fresh=request.fresh)
    items_processed, value = run_calculation(dataset, request.operation, request.field, request.group_by)

    if isinstance(value, list):
        value = [GroupCalculation(label=group.label, value=group.value, count=group.count) for group in value]

    return CalculationResponse(
        dataset_id=dataset_id,
        operation=request.operation,
        field=request.field,
        group_by=request.group_by,
        value=value,
        items_processed=items_processed,
        fetched_at=dataset.fetched_at,
        expires_at=dataset.expires_at,
    )
