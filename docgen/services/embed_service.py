"""Embedding client with pluggable backends.

Backends (EMBED_BACKEND):
- ollama: local Ollama server, no API key needed
- openai: OpenAI embeddings

Every outgoing request takes a slot from the shared sliding-window limiter and
is retried on transient failures. After the retries are spent the caller gets
EmbeddingUnavailable.
"""

from __future__ import annotations

import logging
from typing import List

import httpx

from docgen.core.config import settings
from docgen.core.errors import EmbeddingUnavailable
from docgen.core.rate_limiter import SlidingWindowRateLimiter
from docgen.core.retry import call_with_retry

logger = logging.getLogger(__name__)


async def _embed_with_ollama(texts: List[str], timeout: float) -> list[list[float]]:
    """Ollama embeddings.

    Ollama has changed embedding endpoints across versions:
    - Newer: POST /api/embed  {"model": "...", "input": ["...", ...]}
    - Older: POST /api/embeddings {"model": "...", "prompt": "..."}

    We prefer /api/embed (batch) and fall back to /api/embeddings on 404.
    """
    base = settings.OLLAMA_BASE_URL.rstrip("/")
    model = settings.OLLAMA_EMBED_MODEL

    async with httpx.AsyncClient(timeout=timeout) as client:
        r = await client.post(f"{base}/api/embed", json={"model": model, "input": texts})
        if r.status_code != 404:
            r.raise_for_status()
            embs = r.json().get("embeddings")
            if isinstance(embs, list) and len(embs) == len(texts):
                return embs
            raise EmbeddingUnavailable("Ollama /api/embed response missing 'embeddings'")

        out: list[list[float]] = []
        for t in texts:
            r = await client.post(f"{base}/api/embeddings", json={"model": model, "prompt": t})
            r.raise_for_status()
            vec = r.json().get("embedding")
            if not vec:
                raise EmbeddingUnavailable("Ollama embedding response missing 'embedding'")
            out.append(vec)
        return out


async def _embed_with_openai(texts: List[str], timeout: float) -> list[list[float]]:
    if not settings.OPENAI_API_KEY:
        raise EmbeddingUnavailable("OPENAI_API_KEY is not set")
    from openai import AsyncOpenAI

    client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=timeout, max_retries=0)
    resp = await client.embeddings.create(model=settings.OPENAI_EMBED_MODEL, input=texts)
    return [d.embedding for d in resp.data]


BACKENDS = {
    "ollama": _embed_with_ollama,
    "openai": _embed_with_openai,
}


class EmbeddingClient:
    def __init__(
        self,
        limiter: SlidingWindowRateLimiter,
        backend: str | None = None,
        batch_size: int | None = None,
        dimension: int | None = None,
        timeout: float | None = None,
    ):
        name = (backend or settings.EMBED_BACKEND or "ollama").lower()
        if name not in BACKENDS:
            raise ValueError(f"unknown embedding backend: {name}")
        self.backend = name
        self.limiter = limiter
        self.batch_size = batch_size or settings.EMBED_BATCH
        self.dimension = settings.EMBED_DIM if dimension is None else dimension
        self.timeout = timeout or settings.T_EMBED

    async def _call_backend(self, texts: List[str]) -> list[list[float]]:
        await self.limiter.acquire()
        return await BACKENDS[self.backend](texts, self.timeout)

    async def embed(self, texts: List[str]) -> list[list[float]]:
        texts = [t if t is not None else "" for t in texts]
        out: list[list[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = texts[i:i + self.batch_size]
            vecs = await call_with_retry(
                lambda: self._call_backend(batch),
                unavailable=EmbeddingUnavailable,
                what="embedding request",
            )
            if len(vecs) != len(batch):
                raise EmbeddingUnavailable(f"expected {len(batch)} embeddings, got {len(vecs)}")
            for v in vecs:
                if self.dimension and len(v) != self.dimension:
                    raise EmbeddingUnavailable(
                        f"Embedding dimension mismatch: expected {self.dimension}, got {len(v)}"
                    )
            out.extend(vecs)
            logger.debug("embedded batch %d-%d", i, i + len(batch))
        return out
