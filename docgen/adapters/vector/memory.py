from __future__ import annotations

import asyncio
import math

from docgen.adapters.vector.base import MetaFilter, VectorIndex


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if na == 0 or nb == 0:
        return 0.0
    return dot / (na * nb)


def matches(metadata: dict, filter: MetaFilter | None) -> bool:
    for k, v in (filter or {}).items():
        if v is None:
            continue
        if isinstance(v, (list, tuple, set)):
            if metadata.get(k) not in v:
                return False
        elif metadata.get(k) != v:
            return False
    return True


class InMemoryVectorIndex(VectorIndex):
    """Process-local index for development and tests (VECTOR_DB=memory)."""

    def __init__(self):
        self._points: dict[str, dict] = {}
        self._lock = asyncio.Lock()

    def __len__(self):
        return len(self._points)

    def ids(self, filter: MetaFilter | None = None) -> set[str]:
        return {pid for pid, p in self._points.items() if matches(p["metadata"], filter)}

    async def upsert(self, vectors: list[dict]) -> None:
        async with self._lock:
            for v in vectors:
                self._points[v["id"]] = {
                    "embedding": list(v["embedding"]),
                    "text": v["text"],
                    "metadata": dict(v.get("metadata") or {}),
                }

    async def query(self, embedding: list[float], top_k: int, filter: MetaFilter | None = None) -> list[dict]:
        hits = [
            {"id": pid, "text": p["text"], "metadata": dict(p["metadata"]), "score": _cosine(embedding, p["embedding"])}
            for pid, p in self._points.items()
            if matches(p["metadata"], filter)
        ]
        # ties broken by id so results are stable
        hits.sort(key=lambda h: (-h["score"], h["id"]))
        return hits[:top_k]

    async def delete_by_filter(self, filter: MetaFilter) -> None:
        async with self._lock:
            for pid in self.ids(filter):
                del self._points[pid]
