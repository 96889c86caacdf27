from abc import ABC, abstractmethod
from typing import Any

# {key: value} matches equality; {key: [v1, v2]} matches any of the values.
MetaFilter = dict[str, Any]


class VectorIndex(ABC):
    @abstractmethod
    async def upsert(self, vectors: list[dict]) -> None:
        """Insert or replace `{id, embedding, text, metadata}` records."""

    @abstractmethod
    async def query(self, embedding: list[float], top_k: int, filter: MetaFilter | None = None) -> list[dict]:
        """Return `{id, text, metadata, score}` hits, best first."""

    @abstractmethod
    async def delete_by_filter(self, filter: MetaFilter) -> None: ...

    async def ping(self) -> bool:
        return True
