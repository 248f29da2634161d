"""Error taxonomy shared by services and routes.

Every error carries a stable machine-readable ``code`` and maps to the
structured error envelope in ``gamedata.schemas.common.ErrorResponse``.
"""

from typing import Any


class GameDataError(RuntimeError):
    """Base class for errors surfaced to API callers."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ConfigurationError(GameDataError):
    """Required configuration (e.g. RAWG_API_KEY) is missing. Never retried."""

    code = "CONFIGURATION_ERROR"
    status_code = 500


class UpstreamError(GameDataError):
    """RAWG returned a non-2xx status or a body we could not parse."""

    code = "UPSTREAM_ERROR"
    status_code = 502

    def __init__(self, message: str, status: int | None = None, url: str | None = None):
        super().__init__(message, detail={"status": status, "url": url})
        self.status = status
        self.url = url


class FilterTooBroadError(GameDataError):
    """Upstream count exceeds the hard ceiling for one filter combination."""

    code = "FILTER_TOO_BROAD"
    status_code = 422

    def __init__(self, count: int, limit: int):
        super().__init__(
            " ".join(
                [
                    f"RAWG returned {count} games, which exceeds the maximum allowed ({limit}).",
                    "Please add filters (genre, platform, release window, tags) to narrow "
                    "your request below this limit and try again.",
                ]
            ),
            detail={"count": count, "limit": limit},
        )
        self.count = count
        self.limit = limit


class CacheCorruptionError(GameDataError):
    """A stored record failed schema/version validation.

    Carried inside a decode result and healed by deleting the key; it is
    never raised to API callers.
    """

    code = "CACHE_CORRUPTION"
    status_code = 500

    def __init__(self, key: str, reason: str):
        super().__init__(f"Cached record {key} is invalid: {reason}", detail={"key": key})
        self.key = key
        self.reason = reason


class QueryError(GameDataError):
    """A query expression failed to parse or evaluate."""

    code = "QUERY_ERROR"
    status_code = 400

    def __init__(self, query: str, cause: BaseException):
        message = f"Failed to run JSON query: {cause}" if str(cause) else "Failed to run JSON query"
        super().__init__(message, detail={"query": query, "cause": type(cause).__name__})
        self.query = query
        self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__


class DatasetNotFoundError(GameDataError):
    """No cached aggregate exists for the requested dataset id."""

    code = "DATASET_NOT_FOUND"
    status_code = 404

    def __init__(self, dataset_id: str):
        super().__init__(
            f"Dataset {dataset_id} not found in cache. "
            "Fetch it using /v1/datasets/fetch before running queries.",
            detail={"datasetId": dataset_id},
        )
        self.dataset_id = dataset_id
