"""Tests for retrieval across documents."""

import pytest

from docgen.adapters.vector.memory import InMemoryVectorIndex
from docgen.core.errors import InvalidInput
from docgen.services.retrieve_service import DEFAULT_QUERIES, Retriever, hit_to_chunk
from tests.fakes.embedder import FakeEmbedder


async def _index_with(embedder, rows):
    index = InMemoryVectorIndex()
    await index.upsert([
        {
            "id": f"{file_id}-chunk-{i}",
            "embedding": embedder.vector(text),
            "text": text,
            "metadata": {"fileId": file_id, "chunkIndex": i, "pageNumber": page, "pageRange": str(page)},
        }
        for i, (file_id, text, page) in enumerate(rows)
    ])
    return index


@pytest.mark.asyncio
async def test_retrieve_filters_by_document_and_drops_duplicate_text():
    embedder = FakeEmbedder(dimension=256)
    index = await _index_with(embedder, [
        ("doc-a", "inspect oil level weekly", 3),
        ("doc-a", "inspect oil level weekly", 4),
        ("doc-a", "replace belt annually", 5),
        ("doc-b", "inspect oil level weekly", 1),
    ])

    chunks = await Retriever(embedder, index).retrieve("checksheet", ["doc-a"], query="oil level")

    assert [c.file_id for c in chunks] == ["doc-a", "doc-a"]
    assert [c.text for c in chunks] == ["inspect oil level weekly", "replace belt annually"]
    assert chunks[0].score >= chunks[1].score


@pytest.mark.asyncio
async def test_retrieve_uses_default_query_and_top_k():
    embedder = FakeEmbedder()
    index = await _index_with(embedder, [("doc-a", f"item {i}", i + 1) for i in range(10)])

    chunks = await Retriever(embedder, index).retrieve("workInstructions", ["doc-a"], top_k=4)

    assert len(chunks) == 4
    assert embedder.calls[-1] == [DEFAULT_QUERIES["workInstructions"]]


@pytest.mark.asyncio
async def test_retrieve_requires_documents():
    embedder = FakeEmbedder()
    with pytest.raises(InvalidInput):
        await Retriever(embedder, InMemoryVectorIndex()).retrieve("checksheet", [])


def test_hit_to_chunk_reads_metadata():
    chunk = hit_to_chunk({
        "id": "f-chunk-2",
        "text": "body",
        "score": 0.5,
        "metadata": {"fileId": "f", "chunkIndex": 2, "pageNumber": 11, "startChar": 10, "endChar": 14, "fileName": "m.pdf"},
    })
    assert chunk.page_number == 11
    assert chunk.page_range == "11"
    assert (chunk.start_char, chunk.end_char) == (10, 14)
    assert chunk.file_name == "m.pdf"
