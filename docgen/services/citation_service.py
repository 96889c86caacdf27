from __future__ import annotations

from docgen.core.models import Chunk
from docgen.services.store_service import get_document


def format_citation(file_name: str | None, page_number: int | str | None) -> str:
    name = file_name or "Document"
    if page_number in (None, "", 0):
        return name
    return f"{name}, Page {page_number}"


def resolve_file_names(chunks: list[Chunk]) -> list[Chunk]:
    """Fill `file_name` from the documents table where the index did not carry it.

    Citations must show the uploaded file name, never the bare fileId.
    """
    doc_cache: dict[str, str | None] = {}
    out = []
    for c in chunks:
        if c.file_name:
            out.append(c)
            continue
        if c.file_id not in doc_cache:
            d = get_document(c.file_id)
            doc_cache[c.file_id] = d.original_name if d else None
        name = doc_cache[c.file_id]
        out.append(c.model_copy(update={"file_name": name}) if name else c)
    return out


def build_context(chunks: list[Chunk]) -> str:
    blocks = []
    for c in chunks:
        blocks.append(f"[Source: {format_citation(c.file_name, c.page_number)}]\n{c.text}")
    return "\n\n".join(blocks)
