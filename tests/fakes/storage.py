"""In-memory object storage."""

from docgen.adapters.storage.base import ObjectStorage
from docgen.core.errors import NotFound


class FakeStorage(ObjectStorage):
    def __init__(self):
        self.objects: dict[tuple[str, str], dict] = {}

    async def get(self, bucket, key):
        try:
            return self.objects[(bucket, key)]["data"]
        except KeyError:
            raise NotFound(f"Object not found: {key}") from None

    async def put(self, bucket, key, data, content_type, metadata=None):
        self.objects[(bucket, key)] = {
            "data": bytes(data),
            "content_type": content_type,
            "metadata": dict(metadata or {}),
        }

    async def exists(self, bucket, key):
        return (bucket, key) in self.objects

    async def presign_get(self, bucket, key, expires_in):
        return f"https://storage.test/{bucket}/{key}?X-Amz-Expires={expires_in}"

    async def presign_put(self, bucket, key, content_type, expires_in):
        return f"https://storage.test/{bucket}/{key}?X-Amz-Expires={expires_in}&upload=1"
