"""Shared test fixtures: in-memory store and a mocked RAWG API."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from fakes import RAWG_BASE, FakeRawg, InMemoryStore
from gamedata.services.rawg_client import RawgClient


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def make_client() -> Callable[..., RawgClient]:
    def factory(fake: FakeRawg, **kwargs: Any) -> RawgClient:
        kwargs.setdefault("api_key", "test-key")
        kwargs.setdefault("base_url", RAWG_BASE)
        kwargs.setdefault("retry_waits", [0.0, 0.0, 0.0, 0.0])
        return RawgClient(transport=httpx.MockTransport(fake.handler), **kwargs)

    return factory
