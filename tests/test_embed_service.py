"""Tests for the embedding client: batching, rate limiting and validation."""

from unittest.mock import patch

import httpx
import pytest

from docgen.core.errors import EmbeddingUnavailable
from docgen.core.rate_limiter import SlidingWindowRateLimiter
from docgen.services import embed_service
from docgen.services.embed_service import EmbeddingClient


def _limiter():
    return SlidingWindowRateLimiter(100, 60.0)


@pytest.mark.asyncio
async def test_embed_batches_requests_and_keeps_order():
    batches = []

    async def backend(texts, timeout):
        batches.append(list(texts))
        return [[float(len(t)), 0.0, 1.0] for t in texts]

    with patch.dict(embed_service.BACKENDS, {"ollama": backend}):
        client = EmbeddingClient(_limiter(), backend="ollama", batch_size=2, dimension=3)
        vecs = await client.embed(["a", "bb", "ccc", "dddd", "eeeee"])

    assert batches == [["a", "bb"], ["ccc", "dddd"], ["eeeee"]]
    assert [v[0] for v in vecs] == [1.0, 2.0, 3.0, 4.0, 5.0]


@pytest.mark.asyncio
async def test_each_request_takes_a_limiter_slot():
    limiter = _limiter()

    async def backend(texts, timeout):
        return [[0.0, 1.0] for _ in texts]

    with patch.dict(embed_service.BACKENDS, {"ollama": backend}):
        client = EmbeddingClient(limiter, backend="ollama", batch_size=1, dimension=2)
        await client.embed(["x", "y", "z"])

    assert limiter.in_window == 3


@pytest.mark.asyncio
async def test_dimension_mismatch_is_rejected():
    async def backend(texts, timeout):
        return [[0.0] * 4 for _ in texts]

    with patch.dict(embed_service.BACKENDS, {"ollama": backend}):
        client = EmbeddingClient(_limiter(), backend="ollama", dimension=3)
        with pytest.raises(EmbeddingUnavailable, match="dimension mismatch"):
            await client.embed(["x"])


@pytest.mark.asyncio
async def test_transient_backend_failure_is_retried():
    calls = {"n": 0}

    async def backend(texts, timeout):
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ConnectError("refused")
        return [[1.0] for _ in texts]

    with patch.dict(embed_service.BACKENDS, {"ollama": backend}):
        client = EmbeddingClient(_limiter(), backend="ollama", dimension=1)
        assert await client.embed(["x"]) == [[1.0]]
    assert calls["n"] == 2


def test_unknown_backend():
    with pytest.raises(ValueError):
        EmbeddingClient(_limiter(), backend="nope")
