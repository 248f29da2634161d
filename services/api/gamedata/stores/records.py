"""TTL-checked, version-validated records on top of an untyped KV store.

The store only sees strings. Every read is decoded and validated against the
expected model and version; a payload that fails is treated as a cache miss
and deleted so the next write rebuilds it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Generic, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from gamedata.errors import CacheCorruptionError

logger = logging.getLogger("uvicorn.error")


class KeyValueStore(Protocol):
    """Minimal store contract: string payloads with per-key TTL."""

    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class VersionedRecord(Protocol):
    version: str
    expires_at: datetime


RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(frozen=True)
class DecodeResult(Generic[RecordT]):
    """Tagged outcome of decoding a stored payload: a record or an error."""

    record: RecordT | None = None
    error: CacheCorruptionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.record is not None


def decode_record(
    key: str,
    raw: str,
    model: type[RecordT],
    version: str,
) -> DecodeResult[RecordT]:
    """Parse and validate a stored payload without raising."""
    try:
        record = model.model_validate_json(raw)
    except ValidationError as e:
        return DecodeResult(error=CacheCorruptionError(key, f"schema mismatch ({e.error_count()} errors)"))

    stored_version = getattr(record, "version", None)
    if stored_version != version:
        return DecodeResult(
            error=CacheCorruptionError(key, f"version {stored_version!r} != {version!r}")
        )
    return DecodeResult(record=record)


def encode_record(record: BaseModel) -> str:
    return record.model_dump_json(by_alias=True)


def should_refresh(record: VersionedRecord, now: datetime | None = None) -> bool:
    """True once ``now`` has reached the record's ``expiresAt``."""
    now = now or datetime.now(timezone.utc)
    return now >= record.expires_at


class RecordCache(Generic[RecordT]):
    """Read/validate/write one family of records in a ``KeyValueStore``.

    Datasets and the platform directory are two instances of this class with
    different models, versions and TTLs.
    """

    def __init__(
        self,
        store: KeyValueStore,
        model: type[RecordT],
        version: str,
        ttl_seconds: int,
    ):
        self.store = store
        self.model = model
        self.version = version
        self.ttl_seconds = ttl_seconds

    async def load(self, key: str) -> RecordT | None:
        """Return the stored record, or None when absent or invalid.

        Invalid payloads are deleted (self-healing) rather than surfaced.
        """
        raw = await self.store.get(key)
        if raw is None:
            return None

        result = decode_record(key, raw, self.model, self.version)
        if not result.ok:
            logger.warning(f"[records] record_invalid key={key} reason={result.error.reason}")
            await self.store.delete(key)
            return None
        return result.record

    async def save(self, key: str, record: RecordT) -> None:
        await self.store.put(key, encode_record(record), self.ttl_seconds)

    async def delete(self, key: str) -> None:
        await self.store.delete(key)
