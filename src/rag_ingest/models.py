"""Domain models shared by the ingestion pipeline and the vector store."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class ProcessingConfig(BaseModel):
    """Per-upload chunking and embedding options.

    Attributes
    ----------
    chunk_size:
        Maximum number of characters per chunk.
    overlap_size:
        Characters shared between consecutive chunks.  Must be smaller than
        ``chunk_size``; the chunker enforces this and raises
        :class:`~rag_ingest.errors.InvalidConfig` otherwise.
    model:
        Embedding model identifier.  Empty means the configured default.
    """

    chunk_size: int = Field(default=1000, gt=0)
    overlap_size: int = Field(default=200, ge=0)
    model: str = ""


class UploadedFile(BaseModel):
    """A file handed to the service: name, declared type and raw bytes."""

    name: str
    mime_type: str
    content: bytes = b""
    size: int = -1

    @model_validator(mode="after")
    def _default_size(self) -> UploadedFile:
        if self.size < 0:
            self.size = len(self.content)
        return self


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.COMPLETED, DocumentStatus.ERROR}),
    DocumentStatus.COMPLETED: frozenset(),
    DocumentStatus.ERROR: frozenset(),
}


class DocumentStats(BaseModel):
    """Lifecycle record for one ingestion run.

    Attributes
    ----------
    file_name / file_size:
        Always reported, even when the run fails.
    total_chunks:
        Number of chunks stored; ``0`` on failure.
    processing_time:
        Elapsed wall-clock seconds for the run.
    processed_at:
        UTC timestamp of the terminal transition.
    status:
        ``pending → processing → completed | error``; terminal states are final.
    error:
        Failure message when ``status`` is ``error``.
    """

    file_name: str
    file_size: int = 0
    total_chunks: int = 0
    processing_time: float = 0.0
    processed_at: datetime | None = None
    status: DocumentStatus = DocumentStatus.PENDING
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.status]

    def advance(self, status: DocumentStatus) -> None:
        """Move to *status*, rejecting transitions the lifecycle forbids."""
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(f"Illegal status transition {self.status.value} -> {status.value}")
        self.status = status
        if self.is_terminal:
            self.processed_at = datetime.now(timezone.utc)


class ChunkMetadata(BaseModel):
    source: str
    index: int


class VectorPayload(BaseModel):
    text: str
    metadata: ChunkMetadata


class VectorRecord(BaseModel):
    """Persisted unit: ``<fileName>-<chunkIndex>`` id, vector and payload."""

    id: str
    vector: list[float]
    payload: VectorPayload

    @staticmethod
    def make_id(file_name: str, index: int) -> str:
        return f"{file_name}-{index}"

    @classmethod
    def from_chunk(cls, file_name: str, index: int, text: str, vector: list[float]) -> VectorRecord:
        return cls(
            id=cls.make_id(file_name, index),
            vector=vector,
            payload=VectorPayload(text=text, metadata=ChunkMetadata(source=file_name, index=index)),
        )
