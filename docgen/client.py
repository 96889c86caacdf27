"""Thin HTTP client for the DocGen API.

Ingestion and generation run in the background; callers poll the status
endpoints. PollingClient does the polling with geometric backoff and takes
its `sleep` as a parameter so tests can run it without waiting.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

TERMINAL = ("completed", "failed")


class JobFailed(RuntimeError):
    def __init__(self, status: dict):
        self.status = status
        super().__init__(status.get("error") or status.get("message") or "job failed")


class PollingClient:
    def __init__(
        self,
        get_status: Callable[[], Awaitable[dict]],
        initial_interval: float = 1.0,
        max_interval: float = 10.0,
        multiplier: float = 1.5,
        max_attempts: int = 120,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if initial_interval <= 0 or max_interval < initial_interval:
            raise ValueError("need 0 < initial_interval <= max_interval")
        if multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        self.get_status = get_status
        self.initial_interval = initial_interval
        self.max_interval = max_interval
        self.multiplier = multiplier
        self.max_attempts = max_attempts
        self.sleep = sleep

    def intervals(self):
        interval = self.initial_interval
        while True:
            yield interval
            interval = min(self.max_interval, interval * self.multiplier)

    async def wait(self, on_status: Callable[[dict], None] | None = None) -> dict:
        """Poll until the job is completed or failed; return the last status."""
        delays = self.intervals()
        for attempt in range(1, self.max_attempts + 1):
            status = await self.get_status()
            if on_status is not None:
                on_status(status)
            if status.get("status") in TERMINAL:
                return status
            if attempt < self.max_attempts:
                await self.sleep(next(delays))
        raise TimeoutError(f"job did not finish after {self.max_attempts} polls")


class DocGenClient:
    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 30.0, **polling: Any):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.polling = polling

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        async with self._client() as c:
            r = await c.request(method, path, **kwargs)
            r.raise_for_status()
            return r.json()

    async def upload(self, path: str | Path) -> dict:
        p = Path(path)
        files = {"file": (p.name, p.read_bytes(), "application/pdf")}
        return await self._request("POST", "/upload", files=files)

    async def ingest(self, file_id: str, s3_key: str) -> dict:
        return await self._request("POST", "/ingest", json={"fileId": file_id, "s3Key": s3_key})

    async def ingest_status(self, file_id: str) -> dict:
        return await self._request("GET", f"/ingest-status/{file_id}")

    async def generate(self, use_case: str, document_ids: list[str], **options: Any) -> dict:
        body = {"useCase": use_case, "documentIds": document_ids}
        body.update({k: v for k, v in options.items() if v is not None})
        return await self._request("POST", "/generate-document", json=body)

    async def generation_status(self, generation_id: str) -> dict:
        return await self._request("GET", f"/generation-status/{generation_id}")

    async def _wait(self, get_status: Callable[[], Awaitable[dict]]) -> dict:
        status = await PollingClient(get_status, **self.polling).wait(
            on_status=lambda s: logger.info("%s %s%%: %s", s.get("currentStep"), s.get("progress"), s.get("message"))
        )
        if status["status"] == "failed":
            raise JobFailed(status)
        return status

    async def wait_for_ingestion(self, file_id: str) -> dict:
        return await self._wait(lambda: self.ingest_status(file_id))

    async def wait_for_generation(self, generation_id: str) -> dict:
        return await self._wait(lambda: self.generation_status(generation_id))
