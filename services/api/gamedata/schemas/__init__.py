"""Pydantic schemas for API request/response validation."""

from gamedata.schemas.catalog import PlatformsResponse, TagInfo, TagsResponse
from gamedata.schemas.common import ERROR_RESPONSES, ErrorDetail, ErrorResponse
from gamedata.schemas.datasets import (
    CalculationRequest,
    CalculationResponse,
    DatasetSummary,
    FetchDatasetRequest,
    FetchDatasetResponse,
    FetchFilters,
    GroupCalculation,
    QueryRequest,
    QueryResponse,
)

__all__ = [
    "ERROR_RESPONSES",
    "CalculationRequest",
    "CalculationResponse",
    "DatasetSummary",
    "ErrorDetail",
    "ErrorResponse",
    "FetchDatasetRequest",
    "FetchDatasetResponse",
    "FetchFilters",
    "GroupCalculation",
    "PlatformsResponse",
    "QueryRequest",
    "QueryResponse",
    "TagInfo",
    "TagsResponse",
]
