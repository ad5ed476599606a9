"""Command-line entry point: ``rag-ingest {ingest,stats,list,serve}``."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from pathlib import Path

from rag_ingest.config import configure_logging, settings
from rag_ingest.errors import StoreError
from rag_ingest.ingestion.service import IngestionService
from rag_ingest.models import DocumentStatus, ProcessingConfig, UploadedFile

logger = logging.getLogger(__name__)

mimetypes.add_type("text/markdown", ".md")
mimetypes.add_type("text/markdown", ".markdown")


def guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rag-ingest", description="Document ingestion into a vector store")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Chunk, embed and store one or more files")
    ingest.add_argument("paths", nargs="+", type=Path)
    ingest.add_argument("--mime-type", help="Override the MIME type guessed from the extension")
    ingest.add_argument("--chunk-size", type=int, default=settings.chunk_size)
    ingest.add_argument("--overlap-size", type=int, default=settings.overlap_size)
    ingest.add_argument("--model", default="", help="Embedding model (default: configured model)")

    stats = sub.add_parser("stats", help="Show the stored stats of a document")
    stats.add_argument("file_name")

    sub.add_parser("list", help="List ingested documents")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8080)
    return parser


async def _ingest(service: IngestionService, args: argparse.Namespace) -> int:
    config = ProcessingConfig(chunk_size=args.chunk_size, overlap_size=args.overlap_size, model=args.model)
    uploads = [
        UploadedFile(
            name=path.name,
            mime_type=args.mime_type or guess_mime_type(path),
            content=path.read_bytes(),
        )
        for path in args.paths
    ]
    results = await asyncio.gather(*(service.upload_document(u, config) for u in uploads))
    print(json.dumps([r.model_dump(mode="json") for r in results], indent=2, ensure_ascii=False))
    return 0 if all(r.status is DocumentStatus.COMPLETED for r in results) else 1


async def _stats(service: IngestionService, args: argparse.Namespace) -> int:
    stats = await service.get_document_stats(args.file_name)
    if stats is None:
        print(f"Document {args.file_name!r} not found", file=sys.stderr)
        return 1
    print(stats.model_dump_json(indent=2))
    return 0


async def _list(service: IngestionService, args: argparse.Namespace) -> int:
    print(json.dumps(await service.list_documents(), indent=2, ensure_ascii=False))
    return 0


_COMMANDS = {"ingest": _ingest, "stats": _stats, "list": _list}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("rag_ingest.serving.app:app", host=args.host, port=args.port)
        return 0

    try:
        return asyncio.run(_COMMANDS[args.command](IngestionService(), args))
    except StoreError as exc:
        logger.error("Vector store error: %s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
