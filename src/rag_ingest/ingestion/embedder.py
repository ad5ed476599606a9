"""Batched, retrying embedding generation."""

from __future__ import annotations

import asyncio
import logging

import openai
from langchain_core.embeddings import DeterministicFakeEmbedding, Embeddings
from langchain_openai import OpenAIEmbeddings

from rag_ingest.config import EmbeddingConfig
from rag_ingest.errors import EmbeddingFailure

logger = logging.getLogger(__name__)


def get_embeddings_client(config: EmbeddingConfig) -> Embeddings:
    """Return the LangChain embeddings client described by *config*.

    With the documented mock API key a deterministic offline embedder is
    returned so the pipeline can run without network access.  Otherwise an
    OpenAI-compatible client is pointed at ``config.api_base``; its built-in
    retries are disabled because :class:`EmbeddingGenerator` owns retrying.
    """
    if config.is_mock:
        logger.info("No embedding API key configured; using offline fake embeddings (dim=%d)", config.dimension)
        return DeterministicFakeEmbedding(size=config.dimension)

    return OpenAIEmbeddings(
        model=config.model,
        api_key=config.api_key,
        base_url=config.api_base,
        chunk_size=config.batch_size,
        max_retries=0,
        request_timeout=config.request_timeout,
        # Non-OpenAI providers don't share tiktoken's vocabulary.
        check_embedding_ctx_length=False,
    )


def is_transient(exc: BaseException) -> bool:
    """Return ``True`` for errors worth retrying (network, timeouts, 429, 5xx)."""
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError)):
        return True
    status = getattr(exc, "status_code", None)
    return isinstance(status, int) and (status == 429 or status >= 500)


class EmbeddingGenerator:
    """Convert an ordered list of texts into an equally ordered list of vectors.

    Texts are split into batches of ``config.batch_size`` which are embedded
    concurrently (at most ``config.max_concurrency`` in flight).  Each batch
    result is staged under its batch index and only merged once *every*
    batch has succeeded, so the output order always matches the input order
    and a single failing batch yields no vectors at all.

    Parameters
    ----------
    config:
        Resolved embedding settings (credentials, batching, retry policy).
    client:
        Any LangChain :class:`~langchain_core.embeddings.Embeddings`.  When
        *None*, one is built with :func:`get_embeddings_client`.
    """

    def __init__(self, config: EmbeddingConfig, client: Embeddings | None = None) -> None:
        self.config = config
        self._client = client if client is not None else get_embeddings_client(config)

    @property
    def model(self) -> str:
        return self.config.model

    # -- public API -----------------------------------------------------------

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, all-or-nothing.

        Raises
        ------
        EmbeddingFailure
            When any batch fails permanently or the provider returns a
            malformed result.
        """
        if not texts:
            return []

        size = self.config.batch_size
        batches = [texts[start : start + size] for start in range(0, len(texts), size)]
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        staged: dict[int, list[list[float]]] = {}

        async def _run(batch_index: int, batch: list[str]) -> None:
            async with semaphore:
                staged[batch_index] = await self._embed_batch(batch_index, batch)

        logger.info(
            "Embedding %d chunks in %d batches (model=%s, batch_size=%d)",
            len(texts), len(batches), self.model, size,
        )
        tasks = [asyncio.create_task(_run(i, batch)) for i, batch in enumerate(batches)]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        vectors = [vector for i in range(len(batches)) for vector in staged[i]]
        self._check_shape(texts, vectors)
        return vectors

    # -- internals ------------------------------------------------------------

    async def _embed_batch(self, batch_index: int, batch: list[str]) -> list[list[float]]:
        attempts = self.config.max_attempts
        last_exc: BaseException | None = None

        for attempt in range(1, attempts + 1):
            try:
                vectors = await asyncio.wait_for(
                    self._client.aembed_documents(batch),
                    timeout=self.config.request_timeout,
                )
            except Exception as exc:
                if not is_transient(exc):
                    raise EmbeddingFailure(
                        f"Embedding batch {batch_index} failed: {exc}",
                        batch_index=batch_index,
                        cause=exc,
                    ) from exc
                last_exc = exc
                if attempt < attempts:
                    wait = self.config.backoff_seconds * 2 ** (attempt - 1)
                    logger.warning(
                        "Retry %d/%d for embedding batch %d (wait %.1fs): %r",
                        attempt, attempts, batch_index, wait, exc,
                    )
                    await asyncio.sleep(wait)
            else:
                if len(vectors) != len(batch):
                    raise EmbeddingFailure(
                        f"Embedding batch {batch_index} returned {len(vectors)} vectors for {len(batch)} texts",
                        batch_index=batch_index,
                    )
                logger.debug("Embedded batch %d (%d texts)", batch_index, len(batch))
                return vectors

        raise EmbeddingFailure(
            f"Embedding batch {batch_index} failed after {attempts} attempts: {last_exc!r}",
            batch_index=batch_index,
            cause=last_exc,
        ) from last_exc

    @staticmethod
    def _check_shape(texts: list[str], vectors: list[list[float]]) -> None:
        if len(vectors) != len(texts):
            raise EmbeddingFailure(f"Expected {len(texts)} vectors, got {len(vectors)}")
        dims = {len(v) for v in vectors}
        if len(dims) > 1:
            raise EmbeddingFailure(f"Inconsistent embedding dimensions: {sorted(dims)}")
