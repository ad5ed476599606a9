"""Unit tests for the chunker module."""

import math

import pytest
from langchain_core.documents import Document

from rag_ingest.errors import InvalidConfig
from rag_ingest.ingestion.chunker import FixedWindowTextSplitter, chunk_text


def _sample_text(length: int) -> str:
    return "".join(chr(ord("a") + i % 26) for i in range(length))


def test_chunk_text_splits_long_text() -> None:
    """A text longer than chunk_size should be split."""
    chunks = chunk_text("word " * 500, chunk_size=256, overlap_size=32)
    assert len(chunks) > 1
    assert all(len(c) <= 256 for c in chunks)


def test_chunk_text_short_text_is_single_chunk() -> None:
    assert chunk_text("Short text.", chunk_size=256, overlap_size=0) == ["Short text."]


def test_chunk_text_exact_chunk_size_is_single_chunk() -> None:
    text = _sample_text(100)
    assert chunk_text(text, chunk_size=100, overlap_size=20) == [text]


def test_chunk_text_empty_input() -> None:
    """An empty string should return an empty list."""
    assert chunk_text("", chunk_size=100, overlap_size=10) == []


def test_2500_chars_with_1000_200_gives_three_chunks() -> None:
    text = _sample_text(2500)
    chunks = chunk_text(text, chunk_size=1000, overlap_size=200)

    assert len(chunks) == math.ceil((2500 - 200) / (1000 - 200)) == 3
    assert [len(c) for c in chunks] == [1000, 1000, 900]
    for prev, nxt in zip(chunks, chunks[1:]):
        assert prev[-200:] == nxt[:200]
    assert chunks[-1].endswith(text[-1])


@pytest.mark.parametrize(
    ("length", "size", "overlap"),
    [(1001, 1000, 0), (1001, 1000, 999), (37, 10, 3), (500, 7, 6), (64, 8, 0)],
)
def test_chunk_windows_match_formula(length: int, size: int, overlap: int) -> None:
    text = _sample_text(length)
    chunks = chunk_text(text, chunk_size=size, overlap_size=overlap)
    step = size - overlap

    assert len(chunks) == math.ceil((length - overlap) / step)
    for i, chunk in enumerate(chunks):
        assert chunk == text[i * step : i * step + size]


def test_whitespace_is_not_stripped() -> None:
    text = "  a  " * 10
    chunks = chunk_text(text, chunk_size=7, overlap_size=2)
    assert chunks[0] == text[:7]


@pytest.mark.parametrize(("size", "overlap"), [(100, 100), (100, 150), (0, 0), (10, -1)])
def test_invalid_config_raises(size: int, overlap: int) -> None:
    with pytest.raises(InvalidConfig):
        chunk_text("Hello", chunk_size=size, overlap_size=overlap)


def test_split_documents_preserves_metadata() -> None:
    """Metadata from the source document should be preserved in chunks."""
    docs = [Document(page_content=_sample_text(30), metadata={"source": "test.md"})]
    splitter = FixedWindowTextSplitter(chunk_size=10, chunk_overlap=2)
    chunks = splitter.split_documents(docs)

    assert len(chunks) == 4
    assert all(c.metadata.get("source") == "test.md" for c in chunks)
    assert [c.metadata["start_index"] for c in chunks] == [0, 8, 16, 24]


def test_whitespace_only_text_is_chunked() -> None:
    assert chunk_text(" \n\t ", chunk_size=1000, overlap_size=200) == [" \n\t "]
