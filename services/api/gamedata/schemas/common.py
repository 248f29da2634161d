"""Error envelope returned by every failing endpoint."""

from typing import Any, Literal

from pydantic import BaseModel

from gamedata.errors import GameDataError

ErrorCode = Literal[
    "CONFIGURATION_ERROR",
    "UPSTREAM_ERROR",
    "FILTER_TOO_BROAD",
    "CACHE_CORRUPTION",
    "QUERY_ERROR",
    "DATASET_NOT_FOUND",
    "INTERNAL_ERROR",
]


class ErrorDetail(BaseModel):
    """Machine-readable code, human message and code-specific detail."""

    code: ErrorCode
    message: str
    detail: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response format.

    Format: { "error": { "code": str, "message": str, "detail": object } }
    """

    error: ErrorDetail

    @classmethod
    def from_error(cls, exc: GameDataError) -> "ErrorResponse":
        return cls(error=ErrorDetail(code=exc.code, message=exc.message, detail=exc.detail))

    @classmethod
    def internal(cls, message: str) -> "ErrorResponse":
        return cls(error=ErrorDetail(code="INTERNAL_ERROR", message=message))


# OpenAPI `responses=` for routers whose handlers raise GameDataError.
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Malformed or failing JSON query"},
    404: {"model": ErrorResponse, "description": "Unknown or expired dataset"},
    422: {"model": ErrorResponse, "description": "Filter set matches too many games"},
    500: {"model": ErrorResponse, "description": "Configuration error or corrupt cache record"},
    502: {"model": ErrorResponse, "description": "RAWG request failed"},
}
