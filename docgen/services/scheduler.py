"""Ways of getting a job off the request path.

InProcessScheduler runs the job as an asyncio task in this process.
HttpSelfInvokeScheduler hands it to a worker process (possibly this same
service) through POST {WORKER_URL}/jobs/run, which answers 202 once accepted.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

import httpx

from docgen.core.config import settings

logger = logging.getLogger(__name__)

JobRunner = Callable[[str, str, dict], Awaitable[Any]]


class JobScheduler(ABC):
    @abstractmethod
    async def schedule(self, kind: str, job_id: str, params: dict) -> None:
        """Return once the job is accepted; raise if it could not be handed off."""


class InProcessScheduler(JobScheduler):
    def __init__(self, runner: JobRunner):
        self.runner = runner
        # strong refs so running tasks are not garbage collected
        self._tasks: set[asyncio.Task] = set()

    async def schedule(self, kind: str, job_id: str, params: dict) -> None:
        task = asyncio.create_task(self.runner(kind, job_id, params), name=f"{kind}:{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug("scheduled %s in-process", task.get_name())

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("background job %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("background job %s failed: %s", task.get_name(), exc, exc_info=exc)
        else:
            logger.info("background job %s finished", task.get_name())

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every running job (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class HttpSelfInvokeScheduler(JobScheduler):
    def __init__(self, worker_url: str | None = None, timeout: float = 5.0):
        self.worker_url = (worker_url or settings.WORKER_URL).rstrip("/")
        self.timeout = timeout

    async def schedule(self, kind: str, job_id: str, params: dict) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(
                f"{self.worker_url}/jobs/run",
                json={"kind": kind, "jobId": job_id, "params": params},
            )
            r.raise_for_status()
            if r.status_code != 202:
                raise RuntimeError(f"worker did not accept job {kind}:{job_id} (HTTP {r.status_code})")
        logger.info("handed %s:%s to worker %s", kind, job_id, self.worker_url)
