"""Tests for the SQL embedding store, run against SQLite."""
import numpy as np
import pytest

from conftest import DIM, vector
from faceid.core.exceptions import (
    CorruptEmbeddingError,
    IdentityExistsError,
    IdentityNotFoundError,
    StoreUnavailableError,
)
from faceid.infrastructure.database.session import get_db_session
from faceid.infrastructure.database.unit_of_work import UnitOfWork
from faceid.infrastructure.storage import SqlEmbeddingStore


@pytest.fixture
async def store(tmp_path):
    store = SqlEmbeddingStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'faceid.db'}", dimension=DIM)
    await store.initialize()
    yield store
    await store.close()


async def test_empty_store(store):
    assert await store.load_all() == {}
    assert await store.get("alice") is None


async def test_create_and_get(store):
    await store.create("alice", [vector(0), vector(1)])

    embeddings = await store.get("alice")

    assert len(embeddings) == 2
    np.testing.assert_array_equal(embeddings[0], vector(0))
    np.testing.assert_array_equal(embeddings[1], vector(1))
    assert embeddings[0].dtype == np.float32


async def test_load_all_preserves_enrollment_and_insertion_order(store):
    await store.create("zoe", [vector(0)])
    await store.create("adam", [vector(1)])
    await store.append("zoe", vector(2))
    await store.append("zoe", vector(3))

    identities = await store.load_all()

    assert list(identities.keys()) == ["zoe", "adam"]
    assert [int(np.argmax(e)) for e in identities["zoe"]] == [0, 2, 3]


async def test_vectors_survive_a_reopen(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'faceid.db'}"
    first = SqlEmbeddingStore.from_url(url, dimension=DIM)
    await first.initialize()
    stored = np.linspace(-1.0, 1.0, DIM, dtype=np.float32)
    await first.create("alice", [stored])
    await first.close()

    second = SqlEmbeddingStore.from_url(url, dimension=DIM)
    await second.initialize()
    try:
        identities = await second.load_all()
    finally:
        await second.close()

    np.testing.assert_array_equal(identities["alice"][0], stored)


async def test_create_existing_label_fails(store):
    await store.create("alice", [vector(0)])

    with pytest.raises(IdentityExistsError):
        await store.create("alice", [vector(1)])
    assert len(await store.get("alice")) == 1


async def test_append_to_unknown_label_fails(store):
    with pytest.raises(IdentityNotFoundError):
        await store.append("nobody", vector(0))
    assert await store.load_all() == {}


async def test_create_requires_embeddings(store):
    with pytest.raises(ValueError):
        await store.create("alice", [])


async def test_wrong_dimension_is_rejected_on_write(store):
    with pytest.raises(CorruptEmbeddingError):
        await store.create("alice", [np.zeros(DIM - 1)])
    assert await store.get("alice") is None


async def test_corrupt_row_is_rejected_on_load(store):
    async with get_db_session(store._session_factory) as session:
        async with UnitOfWork(session) as uow:
            identity = await uow.identities.create("alice")
            await uow.embeddings.add(identity, [0.5, 0.25])

    with pytest.raises(CorruptEmbeddingError):
        await store.load_all()


async def test_unreachable_database(tmp_path):
    missing = tmp_path / "missing" / "faceid.db"
    store = SqlEmbeddingStore.from_url(f"sqlite+aiosqlite:///{missing}", dimension=DIM)

    with pytest.raises(StoreUnavailableError):
        await store.initialize()
    await store.close()
