"""Abstract base class for vector-store backends.

Adding a new backend (Qdrant, Pinecone, Weaviate …) only requires
subclassing :class:`VectorStoreBase` and implementing the abstract
coroutines.  The ingestion service is backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from rag_ingest.models import DocumentStats, VectorRecord


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Implementations must tolerate concurrent calls from independent
    ingestion runs; every run only touches records whose id starts with
    its own file name.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index / namespace holding chunks.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- write path -----------------------------------------------------------

    @abstractmethod
    async def store_vectors(self, records: list[VectorRecord]) -> None:
        """Upsert *records* by ``id``; existing ids are overwritten.

        Raises
        ------
        StoreUnavailable
            The backend could not be reached.
        StoreWriteFailure
            The backend rejected the write (e.g. dimension mismatch).
        """
        ...

    @abstractmethod
    async def delete_stale_chunks(self, file_name: str, keep: int) -> int:
        """Delete chunks of *file_name* whose index is ``>= keep``.

        Returns the number of records removed.
        """
        ...

    @abstractmethod
    async def save_document_stats(self, stats: DocumentStats) -> None:
        """Persist *stats* in the document index, keyed by file name."""
        ...

    @abstractmethod
    async def delete_document_stats(self, file_name: str) -> None:
        """Remove the stats of *file_name*; a missing entry is not an error."""
        ...

    # -- read path ------------------------------------------------------------

    @abstractmethod
    async def get_document_stats(self, file_name: str) -> DocumentStats | None:
        """Return the stored stats for *file_name*, or ``None``."""
        ...

    @abstractmethod
    async def list_documents(self) -> list[str]:
        """Return the indexed file names, sorted and without duplicates."""
        ...

    @abstractmethod
    async def get_records(self, file_name: str) -> list[VectorRecord]:
        """Return the chunk records of *file_name* ordered by chunk index."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...
