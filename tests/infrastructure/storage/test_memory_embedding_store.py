"""Tests for the in-memory embedding store."""
import numpy as np
import pytest

from conftest import DIM, vector
from faceid.core.exceptions import CorruptEmbeddingError, IdentityExistsError, IdentityNotFoundError
from faceid.infrastructure.storage import InMemoryEmbeddingStore


async def test_seeded_identities_keep_their_order():
    store = InMemoryEmbeddingStore({"zoe": [vector(0)], "adam": [vector(1)]}, dimension=DIM)

    assert list((await store.load_all()).keys()) == ["zoe", "adam"]


async def test_create_append_and_get():
    store = InMemoryEmbeddingStore(dimension=DIM)

    await store.create("alice", [vector(0)])
    await store.append("alice", vector(1))

    embeddings = await store.get("alice")
    assert [int(np.argmax(e)) for e in embeddings] == [0, 1]


async def test_load_all_returns_a_copy():
    store = InMemoryEmbeddingStore({"alice": [vector(0)]}, dimension=DIM)

    loaded = await store.load_all()
    loaded["alice"].append(vector(1))
    loaded["bob"] = [vector(2)]

    assert list((await store.load_all()).keys()) == ["alice"]
    assert len(await store.get("alice")) == 1


async def test_errors():
    store = InMemoryEmbeddingStore({"alice": [vector(0)]}, dimension=DIM)

    with pytest.raises(IdentityExistsError):
        await store.create("alice", [vector(1)])
    with pytest.raises(IdentityNotFoundError):
        await store.append("bob", vector(1))
    with pytest.raises(CorruptEmbeddingError):
        await store.append("alice", [float("nan")] * DIM)
    assert await store.get("bob") is None
