"""Embedding store implementations."""
from .memory_embedding_store import InMemoryEmbeddingStore
from .sql_embedding_store import SqlEmbeddingStore

__all__ = ["InMemoryEmbeddingStore", "SqlEmbeddingStore"]
