"""RAWG API client for game pages and the platform directory.

Cost control rules:
- One call fetches exactly one page (page_size is pinned by canonicalization)
- Refuse filter sets whose total count exceeds the hard ceiling; this fires
  on the first page fetched, before any sibling page is requested
- Retry transient upstream failures (429/5xx, timeouts) with backoff,
  capped by the length of settings.rawg_retry_waits

Caching is NOT done here; see services/datasets.py and services/platforms.py.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from gamedata.errors import ConfigurationError, FilterTooBroadError, UpstreamError
from gamedata.models import CanonicalFilters, DatasetRecord, GameSummary, PlatformInfo
from gamedata.settings import get_settings

logger = logging.getLogger("uvicorn.error")

TRANSIENT_STATUSES = (429, 500, 502, 503, 504)
EARLIEST_RELEASE_DATE = "1900-01-01"
PLATFORMS_PAGE_SIZE = 40


class RawgGamesResponse(BaseModel):
    """Subset of GET /games we rely on."""

    count: int | None = None
    results: list[GameSummary]


class RawgPlatformsResponse(BaseModel):
    """Subset of GET /platforms we rely on."""

    count: int
    next: str | None = None
    previous: str | None = None
    results: list[PlatformInfo]


class RawgClient:
    """Client for the RAWG REST API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        retry_waits: list[float] | None = None,
        result_hard_limit: int | None = None,
        dataset_ttl_seconds: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client; unset arguments fall back to settings."""
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.rawg_api_key
        self.base_url = (base_url or settings.rawg_api_base).rstrip("/")
        self.retry_waits = list(retry_waits if retry_waits is not None else settings.rawg_retry_waits)
        self.result_hard_limit = result_hard_limit or settings.rawg_result_hard_limit
        self.dataset_ttl_seconds = dataset_ttl_seconds or settings.dataset_ttl_seconds
        self.timeout = timeout or settings.rawg_timeout_seconds
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _require_api_key(self) -> str:
        if not self.api_key:
            logger.error("RAWG_API_KEY is not set - cannot call RAWG")
            raise ConfigurationError("RAWG_API_KEY is not configured")
        return self.api_key

    def _sanitize(self, url: str) -> str:
        """Mask the API key in URLs before logging them."""
        return url.replace(self.api_key, "***") if self.api_key else url

    async def _get_json(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        """GET a JSON object, retrying transient failures.

        Raises:
            UpstreamError: Non-2xx status, non-JSON body, or retries exhausted.
        """
        client = await self._get_client()
        last_err: UpstreamError | None = None

        for attempt, wait_s in enumerate(self.retry_waits, 1):
            if wait_s > 0:
                await asyncio.sleep(wait_s)
            try:
                response = await client.get(url, params=params, headers={"Accept": "application/json"})
            except httpx.TimeoutException:
                last_err = UpstreamError("RAWG request timed out", url=self._sanitize(url))
                logger.warning(f"[rawg] timeout attempt={attempt}/{len(self.retry_waits)} url={self._sanitize(url)}")
                continue
            except httpx.TransportError as e:
                last_err = UpstreamError(f"RAWG request failed: {type(e).__name__}", url=self._sanitize(url))
                logger.warning(
                    f"[rawg] transport_error attempt={attempt}/{len(self.retry_waits)} "
                    f"error={type(e).__name__} url={self._sanitize(url)}"
                )
                continue

            status = response.status_code
            request_url = self._sanitize(str(response.request.url))
            if status in TRANSIENT_STATUSES:
                last_err = UpstreamError(
                    f"RAWG request failed ({status}): {response.text[:200]}",
                    status=status,
                    url=request_url,
                )
                logger.warning(f"[rawg] HTTP {status} attempt={attempt}/{len(self.retry_waits)} url={request_url}")
                continue
            if not response.is_success:
                # 4xx other than 429 will not get better on retry.
                raise UpstreamError(
                    f"RAWG request failed ({status}): {response.text[:200]}",
                    status=status,
                    url=request_url,
                )

            try:
                data = response.json()
            except ValueError as e:
                raise UpstreamError("Failed to parse RAWG response: body is not JSON", status=status, url=request_url) from e
            if not isinstance(data, dict):
                raise UpstreamError("Failed to parse RAWG response: expected an object", status=status, url=request_url)
            return data

        raise last_err or UpstreamError("RAWG request failed", url=self._sanitize(url))

    def _build_games_params(
        self,
        canonical: CanonicalFilters,
        platform_ids: list[str],
        parent_platform_ids: list[str],
    ) -> dict[str, str]:
        params = {
            "key": self._require_api_key(),
            "page": str(canonical.page),
            "page_size": str(canonical.page_size),
        }
        if canonical.genres:
            params["genres"] = ",".join(canonical.genres)
        if canonical.platforms:
            params["platforms"] = ",".join(platform_ids)
        if canonical.parent_platforms:
            params["parent_platforms"] = ",".join(parent_platform_ids)
        if canonical.tags:
            params["tags"] = ",".join(canonical.tags)
        if canonical.released_from or canonical.released_to:
            date_from = canonical.released_from or EARLIEST_RELEASE_DATE
            date_to = canonical.released_to or datetime.now(timezone.utc).date().isoformat()
            params["dates"] = f"{date_from},{date_to}"
        return params

    async def fetch_page(
        self,
        dataset_key: str,
        canonical: CanonicalFilters,
        *,
        platform_ids: list[str] | None = None,
        parent_platform_ids: list[str] | None = None,
        now: datetime | None = None,
    ) -> DatasetRecord:
        """Fetch exactly one page of games for the canonical filters.

        Args:
            dataset_key: Key of the dataset this page belongs to.
            canonical: Canonical filters; ``page``/``page_size`` select the page.
            platform_ids: RAWG ids for ``canonical.platforms``.
            parent_platform_ids: RAWG ids for ``canonical.parent_platforms``.
            now: Fetch timestamp (defaults to current UTC time).

        Returns:
            Page record stamped with fetchedAt/expiresAt.

        Raises:
            ConfigurationError: RAWG_API_KEY missing.
            UpstreamError: Request or parsing failed.
            FilterTooBroadError: Upstream count exceeds the hard ceiling.
        """
        params = self._build_games_params(canonical, platform_ids or [], parent_platform_ids or [])
        url = f"{self.base_url}/games"
        data = await self._get_json(url, params)

        try:
            parsed = RawgGamesResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamError(f"Failed to parse RAWG response: {e.error_count()} validation errors", url=url) from e

        count = parsed.count
        if count is not None and count > self.result_hard_limit:
            logger.warning(
                f"[rawg] rawg_response_limit_exceeded datasetKey={dataset_key} "
                f"count={count} limit={self.result_hard_limit}"
            )
            raise FilterTooBroadError(count=count, limit=self.result_hard_limit)

        items = parsed.results
        logger.info(
            f"[rawg] rawg_response datasetKey={dataset_key} page={canonical.page} count={count} "
            f"items={len(items)} sample={[(item.id, item.name) for item in items[:5]]}"
        )

        page_size = canonical.page_size
        total_pages = math.ceil(count / page_size) if count else canonical.page
        now = now or datetime.now(timezone.utc)

        return DatasetRecord(
            key=dataset_key,
            filters=canonical,
            page=canonical.page,
            total_pages=max(total_pages, canonical.page),
            fetched_at=now,
            expires_at=now + timedelta(seconds=self.dataset_ttl_seconds),
            items=items,
        )

    async def fetch_platforms(self) -> list[PlatformInfo]:
        """Fetch the full platform directory, following ``next`` links.

        Stops after ``ceil(count / PLATFORMS_PAGE_SIZE)`` pages even if
        upstream keeps returning a ``next`` link.
        """
        api_key = self._require_api_key()
        url: str | None = f"{self.base_url}/platforms"
        params: dict[str, str] = {"key": api_key, "page": "1", "page_size": str(PLATFORMS_PAGE_SIZE)}
        platforms: list[PlatformInfo] = []
        pages_fetched = 0
        max_pages = 1

        while url:
            data = await self._get_json(url, params)
            try:
                parsed = RawgPlatformsResponse.model_validate(data)
            except ValidationError as e:
                raise UpstreamError(
                    f"Failed to parse RAWG platforms response: {e.error_count()} validation errors",
                    url=url,
                ) from e
            platforms.extend(parsed.results)
            pages_fetched += 1
            if parsed.count:
                max_pages = max(max_pages, math.ceil(parsed.count / PLATFORMS_PAGE_SIZE))

            if not parsed.next:
                url = None
                continue
            if pages_fetched >= max_pages:
                logger.warning(
                    f"[rawg] platforms_page_cap_reached pages={pages_fetched} "
                    f"count={parsed.count} next={self._sanitize(parsed.next)}"
                )
                break
            # httpx replaces the URL's query with `params`, so carry the `next` query over explicitly.
            next_url = httpx.URL(parsed.next)
            params = {**dict(next_url.params), "key": api_key}
            params.setdefault("page_size", str(PLATFORMS_PAGE_SIZE))
            url = str(next_url.copy_with(query=None))

        logger.info(f"[rawg] platforms_fetched count={len(platforms)} pages={pages_fetched}")
        return platforms


# Singleton client instance
_client: RawgClient | None = None


def get_rawg_client() -> RawgClient:
    """Get RAWG client singleton."""
    global _client
    if _client is None:
        _client = RawgClient()
    return _client


async def close_rawg_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None
