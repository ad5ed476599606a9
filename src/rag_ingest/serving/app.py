"""FastAPI application exposing the ingestion service as a REST API."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from rag_ingest import __version__
from rag_ingest.config import settings
from rag_ingest.errors import StoreError
from rag_ingest.ingestion.service import IngestionService
from rag_ingest.models import DocumentStats, ProcessingConfig, UploadedFile

logger = logging.getLogger(__name__)

app = FastAPI(
    title="rag-ingest API",
    version=__version__,
    description="Upload documents to be chunked, embedded, and indexed in the vector store.",
)


@lru_cache(maxsize=1)
def get_service() -> IngestionService:
    """Process-wide service instance (overridable via ``app.dependency_overrides``)."""
    return IngestionService()


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/documents", response_model=DocumentStats)
async def upload_document(
    file: UploadFile = File(...),
    chunk_size: int = Form(settings.chunk_size),
    overlap_size: int = Form(settings.overlap_size),
    model: str = Form(""),
    service: IngestionService = Depends(get_service),
) -> DocumentStats:
    """Ingest one file; failures are reported in the returned stats, not as HTTP errors."""
    try:
        config = ProcessingConfig(chunk_size=chunk_size, overlap_size=overlap_size, model=model)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False)) from exc

    content = await file.read()
    upload = UploadedFile(
        name=file.filename or "upload",
        mime_type=file.content_type or "application/octet-stream",
        content=content,
    )
    return await service.upload_document(upload, config)


@app.get("/documents", response_model=list[str])
async def list_documents(service: IngestionService = Depends(get_service)) -> list[str]:
    return await service.list_documents()


@app.get("/documents/{file_name:path}", response_model=DocumentStats)
async def get_document_stats(file_name: str, service: IngestionService = Depends(get_service)) -> DocumentStats:
    stats = await service.get_document_stats(file_name)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"Document {file_name!r} not found")
    return stats
