import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from kvault.api import create_app
from kvault.domain.entry import Entry, EntryType, Tag
from kvault.domain.relationships import Relationship, RelationshipType
from kvault.domain.user import AuthPayload
from kvault.graph_stores.local_store import LocalGraphStore
from tests.fakes import FakeClock, FakeIdentityProvider, SequentialIds

CREATED = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_entry() -> Callable[..., Entry]:
    """Factory for entries with sensible defaults."""

    def _make_entry(
        entry_id: str,
        title: str | None = None,
        content: str = "",
        type: EntryType = EntryType.ARTICLE,
        owner_id: str = "owner-1",
        tags: list[str] | None = None,
    ) -> Entry:
        return Entry(
            id=entry_id,
            title=title or f"Entry {entry_id}",
            content=content,
            type=type,
            created_at=CREATED,
            updated_at=CREATED,
            owner_id=owner_id,
            tags=[Tag(id=f"tag-{name}", name=name, created_at=CREATED) for name in tags or []],
        )

    return _make_entry


@pytest.fixture
def make_relationship() -> Callable[..., Relationship]:
    """Factory for relationships with sensible defaults."""

    def _make_relationship(
        rel_id: str,
        from_entry_id: str,
        to_entry_id: str,
        type: RelationshipType = RelationshipType.RELATED_TO,
        owner_id: str = "owner-1",
        description: str | None = None,
    ) -> Relationship:
        return Relationship(
            id=rel_id,
            type=type,
            description=description,
            from_entry_id=from_entry_id,
            to_entry_id=to_entry_id,
            owner_id=owner_id,
            created_at=CREATED,
        )

    return _make_relationship


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> LocalGraphStore:
    """Empty in-memory graph store with deterministic timestamps and ids."""
    return LocalGraphStore(clock=clock, id_factory=SequentialIds())


@pytest.fixture
def fake_identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def alice(fake_identity: FakeIdentityProvider) -> AuthPayload:
    return fake_identity.signup("alice@example.com", "wonderland", "Alice")


@pytest.fixture
def bob(fake_identity: FakeIdentityProvider) -> AuthPayload:
    return fake_identity.signup("bob@example.com", "builder", "Bob")


@pytest.fixture
def auth_headers(alice: AuthPayload) -> dict[str, str]:
    return {"Authorization": f"Bearer {alice.token}"}


@pytest.fixture
def test_client(store: LocalGraphStore, fake_identity: FakeIdentityProvider) -> TestClient:
    """Create test client with an in-memory store and a fake identity provider."""
    app = create_app(store=store, identity=fake_identity)
    return TestClient(app)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Temporary directory for store and users files."""
    with tempfile.TemporaryDirectory() as directory:
        yield Path(directory)
