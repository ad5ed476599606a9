"""In-process vector store used for offline runs and tests."""

from __future__ import annotations

import asyncio
import logging

from rag_ingest.errors import StoreWriteFailure
from rag_ingest.models import DocumentStats, VectorRecord
from rag_ingest.store.base import VectorStoreBase

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorStoreBase):
    """Dict-backed store with collection-like dimension checking.

    The first stored vector fixes the collection dimension; later writes
    with a different size are rejected as a whole, mirroring a real backend.
    """

    def __init__(self, collection_name: str = "memory") -> None:
        super().__init__(collection_name)
        self._records: dict[str, VectorRecord] = {}
        self._stats: dict[str, DocumentStats] = {}
        self._dimension: int | None = None
        self._lock = asyncio.Lock()

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def __len__(self) -> int:
        return len(self._records)

    async def store_vectors(self, records: list[VectorRecord]) -> None:
        if not records:
            return
        async with self._lock:
            expected = self._dimension or len(records[0].vector)
            for rec in records:
                if len(rec.vector) != expected:
                    raise StoreWriteFailure(
                        f"Record {rec.id!r} has dimension {len(rec.vector)}, "
                        f"collection {self.collection_name!r} expects {expected}"
                    )
            self._dimension = expected
            for rec in records:
                self._records[rec.id] = rec.model_copy(deep=True)
        logger.debug("Upserted %d records into %s", len(records), self.collection_name)

    async def delete_stale_chunks(self, file_name: str, keep: int) -> int:
        async with self._lock:
            stale = [
                rid
                for rid, rec in self._records.items()
                if rec.payload.metadata.source == file_name and rec.payload.metadata.index >= keep
            ]
            for rid in stale:
                del self._records[rid]
        return len(stale)

    async def save_document_stats(self, stats: DocumentStats) -> None:
        async with self._lock:
            self._stats[stats.file_name] = stats.model_copy(deep=True)

    async def delete_document_stats(self, file_name: str) -> None:
        async with self._lock:
            self._stats.pop(file_name, None)

    async def get_document_stats(self, file_name: str) -> DocumentStats | None:
        stats = self._stats.get(file_name)
        return stats.model_copy(deep=True) if stats is not None else None

    async def list_documents(self) -> list[str]:
        return sorted(self._stats)

    async def get_records(self, file_name: str) -> list[VectorRecord]:
        records = [r for r in self._records.values() if r.payload.metadata.source == file_name]
        return sorted(records, key=lambda r: r.payload.metadata.index)

    async def health_check(self) -> bool:
        return True
