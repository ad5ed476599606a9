"""Unit tests for the batched embedding generator (no network access)."""

from __future__ import annotations

import asyncio

import httpx
import openai
import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding, Embeddings
from langchain_openai import OpenAIEmbeddings

from rag_ingest.config import EmbeddingConfig
from rag_ingest.errors import EmbeddingFailure
from rag_ingest.ingestion.embedder import EmbeddingGenerator, get_embeddings_client, is_transient

_REQUEST = httpx.Request("POST", "https://embeddings.example/v1/embeddings")


def _config(**overrides) -> EmbeddingConfig:
    values = {"batch_size": 2, "max_concurrency": 2, "max_attempts": 3, "backoff_seconds": 0.0}
    values.update(overrides)
    return EmbeddingConfig(**values)


def _status_error(cls: type[openai.APIStatusError], status: int) -> openai.APIStatusError:
    response = httpx.Response(status, request=_REQUEST)
    return cls(f"HTTP {status}", response=response, body=None)


def _vector(text: str) -> list[float]:
    return [float(len(text)), 1.0, 0.0]


class CountingEmbeddings(Embeddings):
    """Deterministic embeddings that keep every batch they receive."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return _vector(text)


class SlowFirstEmbeddings(Embeddings):
    """Earlier batches finish later, so completion order is reversed."""

    def __init__(self, total: int) -> None:
        self.total = total

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [[float(t.split("-")[1])] for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return self.embed_documents([text])[0]

    async def aembed_documents(self, texts: list[str]) -> list[list[float]]:
        first = int(texts[0].split("-")[1])
        await asyncio.sleep(0.001 * (self.total - first))
        return self.embed_documents(texts)


class FlakyEmbeddings(CountingEmbeddings):
    """Raises *error* for the first *failures* calls, then succeeds."""

    def __init__(self, failures: int, error: Exception) -> None:
        super().__init__()
        self.failures = failures
        self.error = error

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if len(self.calls) <= self.failures:
            raise self.error
        return [_vector(t) for t in texts]


class ShortEmbeddings(CountingEmbeddings):
    """Drops the last vector of every batch."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return super().embed_documents(texts)[:-1]


class RaggedEmbeddings(CountingEmbeddings):
    """Returns a different dimension for the second batch."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        vectors = super().embed_documents(texts)
        if len(self.calls) == 2:
            return [v + [0.5] for v in vectors]
        return vectors


class HangingEmbeddings(CountingEmbeddings):
    async def aembed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        await asyncio.sleep(10)
        return []


# ---------------------------------------------------------------------------
# Client factory
# ---------------------------------------------------------------------------


class TestClientFactory:
    def test_mock_key_gives_offline_embeddings(self) -> None:
        client = get_embeddings_client(EmbeddingConfig(dimension=16))
        assert isinstance(client, DeterministicFakeEmbedding)
        vectors = client.embed_documents(["a", "b"])
        assert len(vectors) == 2 and all(len(v) == 16 for v in vectors)

    def test_real_key_gives_openai_compatible_client(self) -> None:
        config = EmbeddingConfig(api_key="sk-test", api_base="https://embeddings.example/v1", model="embed-v2")
        client = get_embeddings_client(config)
        assert isinstance(client, OpenAIEmbeddings)
        assert client.model == "embed-v2"
        assert client.max_retries == 0

    def test_default_client_is_built_from_config(self) -> None:
        generator = EmbeddingGenerator(EmbeddingConfig(model="m1"))
        assert generator.model == "m1"
        assert isinstance(generator._client, DeterministicFakeEmbedding)


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class TestIsTransient:
    @pytest.mark.parametrize(
        "exc",
        [
            ConnectionError("reset"),
            TimeoutError(),
            asyncio.TimeoutError(),
            openai.APIConnectionError(request=_REQUEST),
            _status_error(openai.RateLimitError, 429),
            _status_error(openai.InternalServerError, 503),
        ],
    )
    def test_transient(self, exc: Exception) -> None:
        assert is_transient(exc)

    @pytest.mark.parametrize(
        "exc",
        [
            ValueError("bad input"),
            _status_error(openai.BadRequestError, 400),
            _status_error(openai.AuthenticationError, 401),
        ],
    )
    def test_permanent(self, exc: Exception) -> None:
        assert not is_transient(exc)


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class TestEmbeddingGenerator:
    @pytest.mark.asyncio
    async def test_empty_input_makes_no_calls(self) -> None:
        embeddings = CountingEmbeddings()
        assert await EmbeddingGenerator(_config(), embeddings).embed_documents([]) == []
        assert embeddings.calls == []

    @pytest.mark.asyncio
    async def test_batches_respect_batch_size(self) -> None:
        embeddings = CountingEmbeddings()
        texts = [f"text {i}" for i in range(5)]
        vectors = await EmbeddingGenerator(_config(batch_size=2), embeddings).embed_documents(texts)

        assert sorted(len(c) for c in embeddings.calls) == [1, 2, 2]
        assert vectors == [_vector(t) for t in texts]

    @pytest.mark.asyncio
    async def test_output_order_matches_input_despite_completion_order(self) -> None:
        texts = [f"chunk-{i}" for i in range(9)]
        generator = EmbeddingGenerator(_config(batch_size=2, max_concurrency=5), SlowFirstEmbeddings(len(texts)))

        vectors = await generator.embed_documents(texts)

        assert vectors == [[float(i)] for i in range(9)]

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self) -> None:
        client = FlakyEmbeddings(failures=2, error=ConnectionError("blip"))
        vectors = await EmbeddingGenerator(_config(batch_size=10), client).embed_documents(["a", "b"])

        assert len(client.calls) == 3
        assert vectors == [_vector("a"), _vector("b")]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, failing_embeddings: Embeddings) -> None:
        client = failing_embeddings
        generator = EmbeddingGenerator(_config(batch_size=10, max_attempts=3), client)

        with pytest.raises(EmbeddingFailure, match="after 3 attempts") as info:
            await generator.embed_documents(["a", "b"])

        assert len(client.calls) == 3
        assert info.value.batch_index == 0
        assert isinstance(info.value.cause, ConnectionError)

    @pytest.mark.asyncio
    async def test_permanent_error_is_not_retried(self) -> None:
        client = FlakyEmbeddings(failures=5, error=_status_error(openai.BadRequestError, 400))

        with pytest.raises(EmbeddingFailure, match="batch 0 failed"):
            await EmbeddingGenerator(_config(batch_size=10), client).embed_documents(["a"])

        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_one_failing_batch_fails_the_whole_call(self) -> None:
        client = FlakyEmbeddings(failures=1, error=ValueError("rejected"))

        with pytest.raises(EmbeddingFailure):
            await EmbeddingGenerator(_config(batch_size=1, max_concurrency=1), client).embed_documents(["a", "b", "c"])

    @pytest.mark.asyncio
    async def test_timeout_counts_as_transient(self) -> None:
        client = HangingEmbeddings()
        generator = EmbeddingGenerator(_config(request_timeout=0.01, max_attempts=2), client)

        with pytest.raises(EmbeddingFailure, match="after 2 attempts"):
            await generator.embed_documents(["a"])

        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_short_batch_is_rejected(self) -> None:
        with pytest.raises(EmbeddingFailure, match="returned 1 vectors for 2 texts"):
            await EmbeddingGenerator(_config(), ShortEmbeddings()).embed_documents(["a", "b"])

    @pytest.mark.asyncio
    async def test_inconsistent_dimensions_are_rejected(self) -> None:
        generator = EmbeddingGenerator(_config(batch_size=1, max_concurrency=1), RaggedEmbeddings())

        with pytest.raises(EmbeddingFailure, match="Inconsistent embedding dimensions"):
            await generator.embed_documents(["a", "b"])
