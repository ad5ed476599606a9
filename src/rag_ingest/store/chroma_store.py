"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, TypeVar

import chromadb
import httpx
from chromadb.errors import ChromaError

from rag_ingest.config import settings
from rag_ingest.errors import StoreError, StoreUnavailable, StoreWriteFailure
from rag_ingest.models import DocumentStats, VectorRecord
from rag_ingest.store.base import VectorStoreBase

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Chroma requires a vector per record; the stats index is looked up by id only.
_STATS_PLACEHOLDER_VECTOR = [0.0]


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    Chunks live in one collection (id ``<file>-<index>``, metadata
    ``source``/``index``, document = chunk text).  A second collection is
    the document-stats index: one record per file name whose document is
    the JSON-encoded :class:`DocumentStats`.

    The Chroma client is synchronous; every call runs in a worker thread
    and is bounded by *timeout*.

    Parameters
    ----------
    collection_name:
        Chunk collection name.
    stats_collection_name:
        Document-stats collection name.
    host / port:
        Chroma server location (ignored when *path* or *client* is given).
    path:
        Directory of an embedded persistent Chroma instead of a server.
    client:
        Pre-built Chroma client, mainly for tests.
    timeout:
        Per-call timeout in seconds.
    upsert_batch_size:
        Max records per upsert call.
    """

    def __init__(
        self,
        collection_name: str = settings.chroma_collection,
        *,
        stats_collection_name: str = settings.chroma_stats_collection,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        path: str = settings.chroma_path,
        client: Any | None = None,
        timeout: float = settings.store_timeout,
        upsert_batch_size: int = settings.upsert_batch_size,
    ) -> None:
        super().__init__(collection_name)
        self.stats_collection_name = stats_collection_name
        self._host = host
        self._port = port
        self._path = path
        self._client = client
        self._timeout = timeout
        self._upsert_batch_size = upsert_batch_size
        self._chunks: Any = None
        self._stats: Any = None

    # -- connection -----------------------------------------------------------

    def _connect(self) -> None:
        if self._chunks is not None:
            return
        try:
            if self._client is None:
                if self._path:
                    self._client = chromadb.PersistentClient(path=self._path)
                else:
                    self._client = chromadb.HttpClient(host=self._host, port=self._port)
            self._chunks = self._client.get_or_create_collection(
                self.collection_name,
                embedding_function=None,
                metadata={"hnsw:space": "cosine"},
            )
            self._stats = self._client.get_or_create_collection(
                self.stats_collection_name,
                embedding_function=None,
            )
        except Exception as exc:
            self._chunks = self._stats = None
            raise StoreUnavailable(f"Cannot connect to Chroma: {exc}") from exc

    async def _call(self, op: str, fn: Callable[..., T], *args: Any, write: bool = False, **kwargs: Any) -> T:
        """Run ``fn`` in a thread, translating failures into store errors."""

        def _invoke() -> T:
            self._connect()
            return fn(*args, **kwargs)

        try:
            return await asyncio.wait_for(asyncio.to_thread(_invoke), timeout=self._timeout)
        except StoreError:
            raise
        except (asyncio.TimeoutError, TimeoutError) as exc:
            raise StoreUnavailable(f"Chroma {op} timed out after {self._timeout}s") from exc
        except (ConnectionError, httpx.TransportError) as exc:
            raise StoreUnavailable(f"Chroma {op} failed: {exc}") from exc
        except (ChromaError, ValueError) as exc:
            if write:
                raise StoreWriteFailure(f"Chroma rejected {op}: {exc}") from exc
            raise StoreUnavailable(f"Chroma {op} failed: {exc}") from exc

    # -- VectorStoreBase overrides --------------------------------------------

    async def store_vectors(self, records: list[VectorRecord]) -> None:
        if not records:
            return

        ids = [r.id for r in records]
        embeddings = [r.vector for r in records]
        documents = [r.payload.text for r in records]
        metadatas = [r.payload.metadata.model_dump() for r in records]

        size = self._upsert_batch_size
        for start in range(0, len(ids), size):
            end = start + size
            await self._call(
                "upsert",
                lambda s=start, e=end: self._chunks.upsert(
                    ids=ids[s:e],
                    embeddings=embeddings[s:e],
                    documents=documents[s:e],
                    metadatas=metadatas[s:e],
                ),
                write=True,
            )
        logger.info("Upserted %d vectors into collection '%s'", len(ids), self.collection_name)

    async def delete_stale_chunks(self, file_name: str, keep: int) -> int:
        where = {"$and": [{"source": {"$eq": file_name}}, {"index": {"$gte": keep}}]}
        found = await self._call("get", lambda: self._chunks.get(where=where, include=[]))
        stale = list(found.get("ids") or [])
        if stale:
            await self._call("delete", lambda: self._chunks.delete(ids=stale), write=True)
            logger.info("Deleted %d stale chunks of %s", len(stale), file_name)
        return len(stale)

    async def save_document_stats(self, stats: DocumentStats) -> None:
        await self._call(
            "upsert stats",
            lambda: self._stats.upsert(
                ids=[stats.file_name],
                embeddings=[_STATS_PLACEHOLDER_VECTOR],
                documents=[stats.model_dump_json()],
                metadatas=[{"status": stats.status.value, "total_chunks": stats.total_chunks}],
            ),
            write=True,
        )

    async def delete_document_stats(self, file_name: str) -> None:
        await self._call("delete stats", lambda: self._stats.delete(ids=[file_name]), write=True)

    async def get_document_stats(self, file_name: str) -> DocumentStats | None:
        found = await self._call("get stats", lambda: self._stats.get(ids=[file_name], include=["documents"]))
        documents = found.get("documents") or []
        if not documents or documents[0] is None:
            return None
        return DocumentStats.model_validate_json(documents[0])

    async def list_documents(self) -> list[str]:
        found = await self._call("list", lambda: self._stats.get(include=[]))
        return sorted(set(found.get("ids") or []))

    async def get_records(self, file_name: str) -> list[VectorRecord]:
        found = await self._call(
            "get",
            lambda: self._chunks.get(
                where={"source": {"$eq": file_name}},
                include=["embeddings", "documents", "metadatas"],
            ),
        )
        ids = found.get("ids") or []
        embeddings = found.get("embeddings")
        if embeddings is None:
            embeddings = [[] for _ in ids]
        documents = found.get("documents") or [""] * len(ids)
        metadatas = found.get("metadatas") or [{}] * len(ids)

        records = [
            VectorRecord.from_chunk(
                file_name=meta.get("source", file_name),
                index=int(meta.get("index", 0)),
                text=doc or "",
                vector=[float(x) for x in emb],
            )
            for emb, doc, meta in zip(embeddings, documents, metadatas)
        ]
        return sorted(records, key=lambda r: r.payload.metadata.index)

    async def health_check(self) -> bool:
        try:
            await self._call("heartbeat", lambda: self._client.heartbeat())
            return True
        except StoreError:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
