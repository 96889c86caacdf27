"""Tests for job submission, scheduling and the synchronous fallback."""

import uuid
from unittest.mock import patch

import httpx
import pytest

from docgen.core.config import settings
from docgen.core.errors import InvalidInput
from docgen.services.job_controller import JobController
from docgen.services.scheduler import HttpSelfInvokeScheduler, JobScheduler
from tests.fakes.manual import PAGES


class BrokenScheduler(JobScheduler):
    async def schedule(self, kind, job_id, params):
        raise RuntimeError("queue unavailable")


async def _stage_pdf(services, pdf):
    file_id = str(uuid.uuid4())
    key = f"documents/{file_id}/manual.pdf"
    await services.storage.put(settings.S3_DOCUMENTS_BUCKET, key, pdf, "application/pdf")
    return file_id, key


@pytest.mark.asyncio
async def test_submit_ingest_runs_in_background(services, make_pdf):
    file_id, key = await _stage_pdf(services, make_pdf(PAGES))
    controller = JobController(services=lambda: services)

    out = await controller.submit_ingest(file_id, key)
    assert out == {"jobId": file_id, "status": "processing", "async": True}
    assert controller.local.pending == 1

    await controller.local.drain()
    assert (await services.ingest_jobs.get(file_id)).status == "completed"


@pytest.mark.asyncio
async def test_scheduling_failure_falls_back_to_synchronous_run(services, make_pdf):
    file_id, key = await _stage_pdf(services, make_pdf(PAGES))
    controller = JobController(scheduler=BrokenScheduler(), services=lambda: services)

    out = await controller.submit_ingest(file_id, key)

    assert out == {"jobId": file_id, "status": "completed", "async": False}


@pytest.mark.asyncio
async def test_synchronous_failure_is_reported_in_status(services, encrypted_pdf):
    file_id, key = await _stage_pdf(services, encrypted_pdf)
    controller = JobController(scheduler=BrokenScheduler(), services=lambda: services)

    out = await controller.submit_ingest(file_id, key)

    assert out["status"] == "failed"
    record = await services.ingest_jobs.get(file_id)
    assert record.error_kind == "PasswordProtected"


@pytest.mark.asyncio
async def test_submit_generation_records_request(services):
    controller = JobController(scheduler=BrokenScheduler(), services=lambda: services)
    doc_id = str(uuid.uuid4())

    out = await controller.submit_generation("workInstructions", [doc_id], query_text="replace filter")

    record = await services.generation_jobs.get(out["jobId"])
    assert record.document_ids == [doc_id]
    assert record.query_text == "replace filter"
    assert record.llm_provider == settings.LLM_PROVIDER
    # nothing was ingested, so the inline run fails cleanly
    assert record.status == "failed"
    assert out["status"] == "failed"


@pytest.mark.asyncio
async def test_unknown_kind(services):
    controller = JobController(services=lambda: services)
    with pytest.raises(InvalidInput):
        await controller.run("poster", str(uuid.uuid4()), {})


def _mock_client(handler):
    real = httpx.AsyncClient

    def factory(**kwargs):
        return real(transport=httpx.MockTransport(handler), **kwargs)

    return patch("docgen.services.scheduler.httpx.AsyncClient", side_effect=factory)


@pytest.mark.asyncio
async def test_http_scheduler_posts_to_worker():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(202, json={"accepted": True})

    with _mock_client(handler):
        await HttpSelfInvokeScheduler("http://worker.test/").schedule("ingest", "job-1", {"s3Key": "documents/a"})

    assert str(seen[0].url) == "http://worker.test/jobs/run"
    assert seen[0].method == "POST"
    assert b'"jobId":"job-1"' in seen[0].content.replace(b" ", b"")


@pytest.mark.asyncio
async def test_http_scheduler_requires_acceptance():
    with _mock_client(lambda request: httpx.Response(200, json={})):
        with pytest.raises(RuntimeError):
            await HttpSelfInvokeScheduler("http://worker.test").schedule("ingest", "job-1", {})

    with _mock_client(lambda request: httpx.Response(503)):
        with pytest.raises(httpx.HTTPStatusError):
            await HttpSelfInvokeScheduler("http://worker.test").schedule("ingest", "job-1", {})
