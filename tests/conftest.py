"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import pytest
from langchain_core.embeddings import Embeddings

from rag_ingest.config import Settings
from rag_ingest.ingestion.service import IngestionService
from rag_ingest.store.memory_store import InMemoryVectorStore


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


class RecordingEmbeddings(Embeddings):
    """Deterministic embeddings that remember every batch they were asked for."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    @staticmethod
    def vector_for(text: str) -> list[float]:
        return [float(len(text)), float(sum(map(ord, text)) % 997), 1.0, 0.0]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self.vector_for(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return self.vector_for(text)


class FailingEmbeddings(RecordingEmbeddings):
    """Always raises a transient error."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        raise ConnectionError("embedding provider unreachable")


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        vector_store_backend="memory",
        embedding_api_key="mock-api-key",
        embedding_batch_size=2,
        embedding_max_attempts=3,
        embedding_backoff_seconds=0.0,
        embedding_request_timeout=5.0,
    )


@pytest.fixture()
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore("test-collection")


@pytest.fixture()
def embeddings() -> RecordingEmbeddings:
    return RecordingEmbeddings()


@pytest.fixture()
def service(memory_store: InMemoryVectorStore, test_settings: Settings, embeddings: RecordingEmbeddings) -> IngestionService:
    return IngestionService(memory_store, config=test_settings, embeddings=embeddings)


@pytest.fixture()
def failing_embeddings() -> FailingEmbeddings:
    return FailingEmbeddings()
