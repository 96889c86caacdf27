"""Job status records for the ingest and generation pipelines.

Rules enforced here rather than by callers:
- progress is clamped to [0, 100] and never goes down
- completed/failed records are frozen
- startedAt is stamped on the first move to processing
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Generic, TypeVar

from docgen.core.config import settings
from docgen.core.errors import NotFound
from docgen.core.models import GenerationJob, IngestJob, JobRecord
from docgen.services import store_service

logger = logging.getLogger(__name__)

J = TypeVar("J", bound=JobRecord)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_seconds(seconds: float) -> str:
    return f"{seconds:.2f}s"


class JobTracker(Generic[J]):
    def __init__(self, kind: str, model: type[J], clock: Callable[[], datetime] = utcnow):
        self.kind = kind
        self.model = model
        self.clock = clock
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _load(self, job_id: str) -> J | None:
        return await asyncio.to_thread(store_service.get_job, self.kind, job_id, self.model)

    async def _save(self, job_id: str, record: J) -> None:
        await asyncio.to_thread(store_service.put_job, self.kind, job_id, record)

    async def create(self, job_id: str, message: str, **fields: Any) -> J:
        now = self.clock()
        record = self.model(
            status="queued",
            current_step="initializing",
            progress=0,
            message=message,
            created_at=now,
            updated_at=now,
            **fields,
        )
        async with self._locks[job_id]:
            await self._save(job_id, record)
        logger.info("%s job %s queued", self.kind, job_id)
        return record

    async def get_raw(self, job_id: str) -> J | None:
        return await self._load(job_id)

    async def get(self, job_id: str) -> J:
        """Current record; processing records get elapsed/ETA fields and a stale flag."""
        record = await self._load(job_id)
        if record is None:
            raise NotFound(f"No {self.kind} job found for {job_id}")
        if record.status != "processing":
            return record
        now = self.clock()
        elapsed = max(0.0, (now - record.created_at).total_seconds())
        extra: dict[str, Any] = {"elapsed_time": round(elapsed, 2)}
        if record.progress > 0:
            total = elapsed * 100 / record.progress
            extra["estimated_total_time"] = round(total, 2)
            extra["estimated_time_remaining"] = round(max(0.0, total - elapsed), 2)
        extra["stale"] = (now - record.updated_at).total_seconds() > settings.JOB_STALE_AFTER_SECONDS
        return record.model_copy(update=extra)

    async def update(
        self,
        job_id: str,
        *,
        step: str | None = None,
        progress: int | None = None,
        message: str | None = None,
        status: str = "processing",
        **fields: Any,
    ) -> J | None:
        async with self._locks[job_id]:
            try:
                record = await self._apply(job_id, step, progress, message, status, fields)
            except NotFound:
                self._locks.pop(job_id, None)
                raise
        # terminal records take no more writes
        if record.is_terminal:
            self._locks.pop(job_id, None)
        return record

    async def _apply(
        self,
        job_id: str,
        step: str | None,
        progress: int | None,
        message: str | None,
        status: str,
        fields: dict[str, Any],
    ) -> J:
        record = await self._load(job_id)
        if record is None:
            raise NotFound(f"No {self.kind} job found for {job_id}")
        if record.is_terminal:
            logger.warning("ignoring update to %s job %s in state %s", self.kind, job_id, record.status)
            return record
        now = self.clock()
        changes: dict[str, Any] = dict(fields)
        changes["status"] = status
        changes["updated_at"] = now
        if status == "processing" and record.started_at is None:
            changes["started_at"] = now
        if step is not None:
            changes["current_step"] = step
        if message is not None:
            changes["message"] = message
        if progress is not None:
            changes["progress"] = max(record.progress, min(100, max(0, int(progress))))
        updated = record.model_copy(update=changes)
        await self._save(job_id, updated)
        return updated

    async def mark_completed(self, job_id: str, message: str, **fields: Any) -> J | None:
        now = self.clock()
        return await self.update(
            job_id,
            status="completed",
            step="completed",
            progress=100,
            message=message,
            completed_at=now,
            **fields,
        )

    async def mark_failed(self, job_id: str, error: Exception | str, step: str | None = None) -> J | None:
        now = self.clock()
        if isinstance(error, str):
            text, kind = error, None
        else:
            text = getattr(error, "message", None) or str(error) or type(error).__name__
            kind = getattr(error, "kind", None) or type(error).__name__
        logger.error("%s job %s failed at %s: %s", self.kind, job_id, step, text)
        return await self.update(
            job_id,
            status="failed",
            step=step,
            message=f"Failed: {text}",
            error=text,
            error_kind=kind,
            failed_at=now,
        )


def ingest_tracker(clock: Callable[[], datetime] = utcnow) -> JobTracker[IngestJob]:
    return JobTracker("ingest", IngestJob, clock)


def generation_tracker(clock: Callable[[], datetime] = utcnow) -> JobTracker[GenerationJob]:
    return JobTracker("generation", GenerationJob, clock)
