"""Process-wide collaborators, built lazily from settings.

Tests swap the whole set with `set_services`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from docgen.adapters.llm.base import LLM
from docgen.adapters.storage.base import ObjectStorage
from docgen.adapters.vector.base import VectorIndex
from docgen.core.config import settings
from docgen.core.models import GenerationJob, IngestJob
from docgen.core.rate_limiter import SlidingWindowRateLimiter
from docgen.services.embed_service import EmbeddingClient
from docgen.services.llm_factory import get_llm
from docgen.services.prompt_service import PromptRepository
from docgen.services.status_service import JobTracker, generation_tracker, ingest_tracker, utcnow


@dataclass
class Services:
    storage: ObjectStorage
    index: VectorIndex
    embedder: EmbeddingClient
    prompts: PromptRepository
    llm_factory: Callable[[str | None], LLM]
    clock: Callable[[], datetime] = utcnow
    ingest_jobs: JobTracker[IngestJob] | None = None
    generation_jobs: JobTracker[GenerationJob] | None = None

    def __post_init__(self):
        if self.ingest_jobs is None:
            self.ingest_jobs = ingest_tracker(self.clock)
        if self.generation_jobs is None:
            self.generation_jobs = generation_tracker(self.clock)


_limiter: SlidingWindowRateLimiter | None = None
_services: Services | None = None


def get_rate_limiter() -> SlidingWindowRateLimiter:
    """One limiter per process, shared by embeddings and every LLM call."""
    global _limiter
    if _limiter is None:
        _limiter = SlidingWindowRateLimiter(settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)
    return _limiter


def _build_index() -> VectorIndex:
    backend = (settings.VECTOR_DB or "qdrant").lower()
    if backend == "memory":
        from docgen.adapters.vector.memory import InMemoryVectorIndex
        return InMemoryVectorIndex()
    if backend == "qdrant":
        from docgen.adapters.vector.qdrant import QdrantVectorIndex
        return QdrantVectorIndex()
    raise ValueError(f"unknown VECTOR_DB: {settings.VECTOR_DB}")


def _build_prompts() -> PromptRepository:
    if settings.PROMPT_LIBRARY_PATH:
        return PromptRepository.from_file(settings.PROMPT_LIBRARY_PATH)
    return PromptRepository()


def get_services() -> Services:
    global _services
    if _services is None:
        from docgen.adapters.storage.s3 import S3ObjectStorage

        limiter = get_rate_limiter()
        _services = Services(
            storage=S3ObjectStorage(),
            index=_build_index(),
            embedder=EmbeddingClient(limiter),
            prompts=_build_prompts(),
            llm_factory=lambda provider: get_llm(provider, limiter=limiter),
        )
    return _services


def set_services(services: Services | None) -> None:
    global _services
    _services = services
