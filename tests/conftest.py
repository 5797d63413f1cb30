"""Global fixtures: initialized in-memory store and a fake provider."""

import pytest
import pytest_asyncio

from scout.database.memory_store import InMemoryDocumentStore
from tests.fakes import FakeProvider


@pytest_asyncio.fixture
async def store() -> InMemoryDocumentStore:
    """In-memory store with an active collection."""
    s = InMemoryDocumentStore()
    await s.initialize("test")
    return s


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()
