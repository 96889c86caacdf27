import logging

from docgen.adapters.vector.base import VectorIndex
from docgen.core.config import settings
from docgen.core.errors import InvalidInput
from docgen.core.models import Chunk, UseCase
from docgen.services.embed_service import EmbeddingClient

logger = logging.getLogger(__name__)

# Query wording is a tuning knob; keep it close to what the prompts ask for.
DEFAULT_QUERIES: dict[str, str] = {
    "checksheet": (
        "inspection points, inspection items and checks, inspection frequency "
        "(daily, weekly, monthly, quarterly, annually), acceptance criteria, "
        "expected status, tolerances, measurements and verification criteria"
    ),
    "workInstructions": (
        "maintenance procedures, step-by-step instructions and step sequence, "
        "required tools and materials, safety warnings, precautions, lockout, "
        "personal protective equipment and completion checks"
    ),
}


def default_query(use_case: str) -> str:
    try:
        return DEFAULT_QUERIES[use_case]
    except KeyError:
        raise InvalidInput(f"Unknown useCase '{use_case}'") from None


def hit_to_chunk(hit: dict) -> Chunk:
    meta = hit.get("metadata") or {}
    page = meta.get("pageNumber")
    return Chunk(
        id=hit["id"],
        file_id=meta.get("fileId", ""),
        chunk_index=int(meta.get("chunkIndex", 0)),
        text=hit.get("text") or "",
        page_number=int(page) if page is not None else 0,
        page_range=str(meta.get("pageRange") or page or ""),
        start_char=int(meta.get("startChar", 0)),
        end_char=int(meta.get("endChar", 0)),
        file_name=meta.get("fileName"),
        score=hit.get("score"),
    )


class Retriever:
    def __init__(self, embedder: EmbeddingClient, index: VectorIndex):
        self.embedder = embedder
        self.index = index

    async def retrieve(
        self,
        use_case: UseCase,
        document_ids: list[str],
        query: str | None = None,
        top_k: int | None = None,
    ) -> list[Chunk]:
        """Top-k chunks across `document_ids`, best first, exact-text duplicates dropped."""
        top_k = top_k or settings.RETRIEVAL_TOP_K
        if not document_ids:
            raise InvalidInput("documentIds must not be empty")
        text = (query or "").strip() or default_query(use_case)

        qvec = (await self.embedder.embed([text]))[0]
        # over-fetch a little so dedup does not starve the result
        hits = await self.index.query(qvec, top_k * 2, filter={"fileId": list(document_ids)})

        out: list[Chunk] = []
        seen: set[str] = set()
        for h in sorted(hits, key=lambda h: -(h.get("score") or 0.0)):
            key = (h.get("text") or "").strip()
            if not key or key in seen:
                continue
            seen.add(key)
            out.append(hit_to_chunk(h))
            if len(out) >= top_k:
                break
        logger.info("retrieved %d chunks for %s across %d documents", len(out), use_case, len(document_ids))
        return out
