"""Exception hierarchy for the ingestion pipeline.

Every expected failure mode of :meth:`IngestionService.upload_document`
derives from :class:`IngestionError`; the service converts these into an
``error``-status :class:`~rag_ingest.models.DocumentStats` instead of
raising.  Anything else is a programming error and propagates.
"""

from __future__ import annotations


class IngestionError(Exception):
    """Base class for all documented ingestion failures."""


class UnsupportedFormat(IngestionError):
    """The declared MIME type has no registered text extractor."""

    def __init__(self, mime_type: str) -> None:
        self.mime_type = mime_type
        super().__init__(f"Unsupported file format: {mime_type!r}")


class ParseFailure(IngestionError):
    """The extractor for the declared type could not decode the bytes."""


class InvalidConfig(IngestionError):
    """Chunking parameters that would never advance through the text."""


class EmbeddingFailure(IngestionError):
    """A batch could not be embedded, after retries where applicable.

    Attributes
    ----------
    batch_index:
        Zero-based index of the failing batch (``None`` when the failure is
        not tied to a single batch, e.g. a length mismatch).
    cause:
        The underlying exception, also available as ``__cause__``.
    """

    def __init__(self, message: str, *, batch_index: int | None = None, cause: BaseException | None = None) -> None:
        self.batch_index = batch_index
        self.cause = cause
        super().__init__(message)


class StoreError(IngestionError):
    """Base class for vector-store persistence failures."""


class StoreUnavailable(StoreError):
    """The backing store could not be reached or did not answer in time."""


class StoreWriteFailure(StoreError):
    """The store rejected a write (e.g. vector dimension mismatch)."""
