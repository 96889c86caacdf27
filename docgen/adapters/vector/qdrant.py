from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional

import httpx
from qdrant_client import QdrantClient
from qdrant_client.http import models as qm

from docgen.core.config import settings
from docgen.core.errors import VectorStoreUnavailable
from docgen.core.retry import call_with_retry
from docgen.adapters.vector.base import MetaFilter, VectorIndex

logger = logging.getLogger(__name__)


def point_id(chunk_id: str) -> str:
    """Qdrant only accepts UUIDs or integers as point ids.

    The readable `{fileId}-chunk-{n}` id is hashed into a stable UUID, so
    re-ingesting a file overwrites the same points.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_URL, chunk_id))


def _meta_filter_to_qdrant_filter(meta_filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Convert simple {key: value | [values]} filters into Qdrant REST filter schema."""
    if not meta_filter:
        return None
    must = []
    for k, v in meta_filter.items():
        if v is None:
            continue
        if isinstance(v, (list, tuple, set)):
            must.append({"key": k, "match": {"any": list(v)}})
        else:
            # Qdrant match supports strings, numbers, bools
            must.append({"key": k, "match": {"value": v}})
    return {"must": must} if must else None


class QdrantVectorIndex(VectorIndex):
    def __init__(self, url: str | None = None, collection: str | None = None, dim: int | None = None):
        self.collection = collection or settings.VECTOR_COLLECTION
        self.url = (url or settings.VECTOR_DB_URL).rstrip("/")
        self.dim = dim or settings.EMBED_DIM
        self.timeout = settings.T_VECTOR
        # SDK for collection management and upserts; REST for search/delete,
        # whose SDK signatures keep moving between releases.
        self.client = QdrantClient(url=self.url, timeout=int(self.timeout))
        self._ready = False

    # ---- sync internals (run in a worker thread) ----

    def _get_existing_dim(self) -> Optional[int]:
        with httpx.Client(timeout=5.0) as c:
            r = c.get(f"{self.url}/collections/{self.collection}")
            if r.status_code == 404:
                return None
            r.raise_for_status()
            data = r.json().get("result", {})
            vectors = data.get("config", {}).get("params", {}).get("vectors")

            # Possible shapes:
            # 1) {"size": 768, "distance": "Cosine"}
            # 2) {"default": {"size": 768, ...}} (named vectors)
            if isinstance(vectors, dict) and "size" in vectors:
                return int(vectors["size"])
            if isinstance(vectors, dict) and isinstance(vectors.get("default"), dict):
                if "size" in vectors["default"]:
                    return int(vectors["default"]["size"])
        return None

    def ensure_collection(self, dim: int | None = None):
        """Ensure the collection exists AND has the expected embedding dimension.

        Qdrant hard-fails upserts/searches when the vector size mismatches,
        which happens after switching embedding models on a persisted volume.
        """
        dim = dim or self.dim
        existing_dim = self._get_existing_dim()
        if existing_dim is not None:
            if existing_dim == dim:
                self._ready = True
                return
            if not settings.VECTOR_RECREATE_ON_DIM_MISMATCH:
                raise VectorStoreUnavailable(
                    f"Qdrant collection '{self.collection}' has dim={existing_dim} but expected dim={dim}. "
                    "Set VECTOR_RECREATE_ON_DIM_MISMATCH=true to auto-recreate."
                )
            logger.warning("recreating collection %s (dim %s -> %s)", self.collection, existing_dim, dim)
            self.client.delete_collection(collection_name=self.collection)

        self.client.create_collection(
            collection_name=self.collection,
            vectors_config=qm.VectorParams(size=dim, distance=qm.Distance.COSINE),
        )
        self.client.create_payload_index(
            collection_name=self.collection,
            field_name="fileId",
            field_schema=qm.PayloadSchemaType.KEYWORD,
        )
        self._ready = True

    def _ensure_ready(self):
        if not self._ready:
            self.ensure_collection()

    def _upsert_sync(self, vectors: List[Dict[str, Any]]):
        self._ensure_ready()
        points = [
            qm.PointStruct(
                id=point_id(v["id"]),
                vector=list(v["embedding"]),
                payload={**(v.get("metadata") or {}), "chunkId": v["id"], "text": v["text"]},
            )
            for v in vectors
        ]
        self.client.upsert(collection_name=self.collection, points=points, wait=True)

    def _search_sync(self, vector: List[float], top_k: int, meta_filter: Optional[MetaFilter]):
        self._ensure_ready()
        payload: Dict[str, Any] = {
            "vector": vector,
            "limit": top_k,
            "with_payload": True,
        }
        qfilter = _meta_filter_to_qdrant_filter(meta_filter or {})
        if qfilter:
            payload["filter"] = qfilter

        with httpx.Client(timeout=self.timeout) as c:
            r = c.post(f"{self.url}/collections/{self.collection}/points/search", json=payload)
            r.raise_for_status()
            return r.json().get("result", [])

    def _delete_sync(self, meta_filter: MetaFilter):
        self._ensure_ready()
        qfilter = _meta_filter_to_qdrant_filter(meta_filter)
        if not qfilter:
            raise ValueError("refusing to delete with an empty filter")
        with httpx.Client(timeout=self.timeout) as c:
            r = c.post(
                f"{self.url}/collections/{self.collection}/points/delete?wait=true",
                json={"filter": qfilter},
            )
            r.raise_for_status()

    @staticmethod
    def _normalize_hit(hit: Dict[str, Any]) -> Dict[str, Any]:
        payload = dict(hit.get("payload") or {})
        text = payload.pop("text", "")
        chunk_id = payload.pop("chunkId", None) or str(hit.get("id"))
        return {
            "id": chunk_id,
            "text": text,
            "metadata": payload,
            "score": float(hit.get("score") or 0.0),
        }

    # ---- async surface ----

    async def upsert(self, vectors: list[dict]) -> None:
        if not vectors:
            return
        await call_with_retry(
            lambda: asyncio.to_thread(self._upsert_sync, vectors),
            unavailable=VectorStoreUnavailable,
            what="qdrant upsert",
        )

    async def query(self, embedding: list[float], top_k: int, filter: MetaFilter | None = None) -> list[dict]:
        hits = await call_with_retry(
            lambda: asyncio.to_thread(self._search_sync, embedding, top_k, filter),
            unavailable=VectorStoreUnavailable,
            what="qdrant search",
        )
        return [self._normalize_hit(h) for h in hits]

    async def delete_by_filter(self, filter: MetaFilter) -> None:
        await call_with_retry(
            lambda: asyncio.to_thread(self._delete_sync, filter),
            unavailable=VectorStoreUnavailable,
            what="qdrant delete",
        )

    async def ping(self) -> bool:
        async with httpx.AsyncClient(timeout=3.0) as c:
            r = await c.get(f"{self.url}/collections")
            return r.status_code == 200
