from abc import ABC, abstractmethod


class ObjectStorage(ABC):
    """GET/PUT/presign over named buckets."""

    @abstractmethod
    async def get(self, bucket: str, key: str) -> bytes: ...

    @abstractmethod
    async def put(self, bucket: str, key: str, data: bytes, content_type: str, metadata: dict | None = None) -> None: ...

    @abstractmethod
    async def exists(self, bucket: str, key: str) -> bool: ...

    @abstractmethod
    async def presign_get(self, bucket: str, key: str, expires_in: int) -> str: ...

    @abstractmethod
    async def presign_put(self, bucket: str, key: str, content_type: str, expires_in: int) -> str: ...
