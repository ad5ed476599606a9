"""
Store — persistence of chunk vectors and the per-document stats index.

Public surface
--------------
- :class:`VectorStoreBase` — abstract backend (subclass for Qdrant, etc.).
- :class:`InMemoryVectorStore` — in-process backend for offline runs and tests.
- :class:`ChromaVectorStore` — default Chroma backend.
- :func:`get_vector_store` — build the backend selected in the settings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rag_ingest.store.base import VectorStoreBase
from rag_ingest.store.memory_store import InMemoryVectorStore

if TYPE_CHECKING:
    from rag_ingest.config import Settings

__all__ = [
    "ChromaVectorStore",
    "InMemoryVectorStore",
    "VectorStoreBase",
    "get_vector_store",
]


def get_vector_store(config: Settings | None = None) -> VectorStoreBase:
    """Return the backend named by ``vector_store_backend``."""
    if config is None:
        from rag_ingest.config import settings as config

    backend = config.vector_store_backend.lower()
    if backend == "memory":
        return InMemoryVectorStore(config.chroma_collection)
    if backend == "chroma":
        from rag_ingest.store.chroma_store import ChromaVectorStore

        return ChromaVectorStore(
            config.chroma_collection,
            stats_collection_name=config.chroma_stats_collection,
            host=config.chroma_host,
            port=config.chroma_port,
            path=config.chroma_path,
            timeout=config.store_timeout,
            upsert_batch_size=config.upsert_batch_size,
        )
    raise ValueError(f"Unsupported vector_store_backend={config.vector_store_backend!r}. Choose from: chroma, memory.")


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from rag_ingest.store.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
