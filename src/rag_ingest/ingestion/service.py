"""Ingestion service: run an uploaded document through the pipeline into the vector store.

Usage::

    from rag_ingest.ingestion.service import IngestionService
    from rag_ingest.models import ProcessingConfig, UploadedFile

    service = IngestionService()
    stats = await service.upload_document(
        UploadedFile(name="notes.md", mime_type="text/markdown", content=data),
        ProcessingConfig(chunk_size=1000, overlap_size=200),
    )
    print(stats.status, stats.total_chunks)
"""

from __future__ import annotations

import asyncio
import logging
import time

from langchain_core.embeddings import Embeddings

from rag_ingest.config import Settings, settings
from rag_ingest.errors import IngestionError, StoreError, UnsupportedFormat
from rag_ingest.ingestion.chunker import FixedWindowTextSplitter
from rag_ingest.ingestion.embedder import EmbeddingGenerator
from rag_ingest.ingestion.loader import extract_text, is_supported
from rag_ingest.models import DocumentStats, DocumentStatus, ProcessingConfig, UploadedFile, VectorRecord
from rag_ingest.store import VectorStoreBase, get_vector_store

logger = logging.getLogger(__name__)


class IngestionService:
    """Drives one document at a time through the ingestion pipeline.

    Independent :meth:`upload_document` calls may run concurrently on the
    same service; they share only the vector store.

    Parameters
    ----------
    store:
        Vector-store backend.  When *None*, the backend named in the
        settings is created.
    config:
        Settings to resolve embedding and store options from.
    embeddings:
        Optional LangChain embeddings client shared by every model; mainly
        for tests.  By default a client is built per model from the settings.
    """

    def __init__(
        self,
        store: VectorStoreBase | None = None,
        *,
        config: Settings | None = None,
        embeddings: Embeddings | None = None,
    ) -> None:
        self._settings = config or settings
        self._store = store if store is not None else get_vector_store(self._settings)
        self._embeddings = embeddings
        self._generators: dict[str, EmbeddingGenerator] = {}

    @property
    def store(self) -> VectorStoreBase:
        return self._store

    def embedding_generator(self, model: str = "") -> EmbeddingGenerator:
        """Return the (cached) generator for *model*, defaulting to the configured one."""
        model = model or self._settings.embedding_model
        if model not in self._generators:
            self._generators[model] = EmbeddingGenerator(
                self._settings.embedding_config(model),
                client=self._embeddings,
            )
        return self._generators[model]

    # -- write path -----------------------------------------------------------

    async def upload_document(self, file: UploadedFile, config: ProcessingConfig) -> DocumentStats:
        """Ingest *file* and return its terminal :class:`DocumentStats`.

        Expected failures never raise: they come back as an ``error`` status
        with ``total_chunks == 0`` and the failure message.  The file's name
        and size are reported either way.  A store failure while committing
        rolls the file back to what was stored before the call.
        """
        stats = DocumentStats(file_name=file.name, file_size=file.size)
        started = time.perf_counter()
        stats.advance(DocumentStatus.PROCESSING)
        logger.info("Ingesting %s (%d bytes, %s)", file.name, file.size, file.mime_type)

        try:
            records = await self._prepare_records(file, config)

            completed = stats.model_copy(deep=True)
            completed.total_chunks = len(records)
            completed.processing_time = time.perf_counter() - started
            completed.advance(DocumentStatus.COMPLETED)
            await self._commit(file.name, records, completed)
        except IngestionError as exc:
            stats.total_chunks = 0
            stats.error = str(exc)
            stats.processing_time = time.perf_counter() - started
            stats.advance(DocumentStatus.ERROR)
            logger.error("Ingestion of %s failed: %s", file.name, exc)
            return stats

        logger.info(
            "Ingested %s: %d chunks in %.2fs",
            file.name, completed.total_chunks, completed.processing_time,
        )
        return completed

    async def _prepare_records(self, file: UploadedFile, config: ProcessingConfig) -> list[VectorRecord]:
        if not is_supported(file.mime_type):
            raise UnsupportedFormat(file.mime_type)
        splitter = FixedWindowTextSplitter(chunk_size=config.chunk_size, chunk_overlap=config.overlap_size)

        text = await asyncio.to_thread(extract_text, file)
        chunks = splitter.split_text(text)
        logger.debug("%s: %d characters → %d chunks", file.name, len(text), len(chunks))
        if not chunks:
            return []

        vectors = await self.embedding_generator(config.model).embed_documents(chunks)
        return [
            VectorRecord.from_chunk(file.name, index, chunk, vector)
            for index, (chunk, vector) in enumerate(zip(chunks, vectors))
        ]

    async def _commit(self, file_name: str, records: list[VectorRecord], stats: DocumentStats) -> None:
        """Upsert *records*, prune stale chunks and save *stats*, or undo all of it."""
        previous_records = await self._store.get_records(file_name)
        previous_stats = await self._store.get_document_stats(file_name)

        try:
            await self._store.store_vectors(records)
            # Drop chunks left over from a previous, longer version of this file.
            removed = await self._store.delete_stale_chunks(file_name, keep=len(records))
            if removed:
                logger.info("Removed %d stale chunks of %s", removed, file_name)
            await self._store.save_document_stats(stats)
        except StoreError:
            await self._rollback(file_name, previous_records, previous_stats)
            raise

    async def _rollback(
        self,
        file_name: str,
        records: list[VectorRecord],
        stats: DocumentStats | None,
    ) -> None:
        logger.warning("Rolling back %s to %d previously stored chunks", file_name, len(records))
        try:
            await self._store.delete_stale_chunks(file_name, keep=0)
            if records:
                await self._store.store_vectors(records)
            if stats is None:
                await self._store.delete_document_stats(file_name)
            else:
                await self._store.save_document_stats(stats)
        except StoreError:
            logger.exception("Rollback of %s failed; its chunks and stats may disagree", file_name)

    # -- read path ------------------------------------------------------------

    async def get_document_stats(self, file_name: str) -> DocumentStats | None:
        return await self._store.get_document_stats(file_name)

    async def list_documents(self) -> list[str]:
        return await self._store.list_documents()
