from __future__ import annotations

import logging
import uuid
from typing import Callable

from docgen.core.config import settings
from docgen.core.errors import InvalidInput
from docgen.services import pipeline_service
from docgen.services.providers import Services, get_services
from docgen.services.scheduler import HttpSelfInvokeScheduler, InProcessScheduler, JobScheduler

logger = logging.getLogger(__name__)

KINDS = ("ingest", "generation")


class JobController:
    """Accept work, record it as queued, then hand it off.

    The queued record is written before scheduling so a poller never sees a
    missing job. When hand-off fails the job runs inline on the request; its
    failure then shows up in the status record.
    """

    def __init__(
        self,
        scheduler: JobScheduler | None = None,
        services: Callable[[], Services] = get_services,
    ):
        self._services = services
        self.local = InProcessScheduler(self.run)
        if scheduler is not None:
            self.scheduler = scheduler
        elif settings.JOB_SCHEDULER == "http":
            self.scheduler = HttpSelfInvokeScheduler()
        else:
            self.scheduler = self.local

    @property
    def services(self) -> Services:
        return self._services()

    async def submit_ingest(self, file_id: str, s3_key: str) -> dict:
        await self.services.ingest_jobs.create(
            file_id,
            message="Ingestion queued",
            file_id=file_id,
            s3_key=s3_key,
        )
        return await self._dispatch("ingest", file_id, {"fileId": file_id, "s3Key": s3_key})

    async def submit_generation(
        self,
        use_case: str,
        document_ids: list[str],
        prompt_id: str | None = None,
        llm_provider: str | None = None,
        query_text: str | None = None,
    ) -> dict:
        generation_id = str(uuid.uuid4())
        await self.services.generation_jobs.create(
            generation_id,
            message="Document generation queued",
            generation_id=generation_id,
            use_case=use_case,
            document_ids=document_ids,
            prompt_id=prompt_id,
            llm_provider=llm_provider or settings.LLM_PROVIDER,
            query_text=query_text,
        )
        return await self._dispatch("generation", generation_id, {"generationId": generation_id})

    async def _dispatch(self, kind: str, job_id: str, params: dict) -> dict:
        try:
            await self.scheduler.schedule(kind, job_id, params)
            return {"jobId": job_id, "status": "processing", "async": True}
        except Exception:
            logger.exception("could not schedule %s:%s, running synchronously", kind, job_id)

        try:
            record = await self.run(kind, job_id, params)
        except Exception as e:
            # the pipeline already marked the job failed
            logger.warning("synchronous %s:%s failed: %s", kind, job_id, e)
            tracker = self.services.ingest_jobs if kind == "ingest" else self.services.generation_jobs
            record = await tracker.get(job_id)
        return {"jobId": job_id, "status": record.status, "async": False}

    async def run(self, kind: str, job_id: str, params: dict):
        """Do the actual work. Shared by in-process tasks and the worker endpoint."""
        if kind == "ingest":
            return await pipeline_service.run_ingestion(job_id, params["s3Key"], self.services)
        if kind == "generation":
            return await pipeline_service.run_generation(job_id, self.services)
        raise InvalidInput(f"Unknown job kind '{kind}'. Use one of: {', '.join(KINDS)}")


_controller: JobController | None = None


def get_controller() -> JobController:
    global _controller
    if _controller is None:
        _controller = JobController()
    return _controller


def set_controller(controller: JobController | None) -> None:
    global _controller
    _controller = controller
