"""Tests for job status tracking."""

from datetime import datetime, timedelta, timezone

import pytest

from docgen.core.errors import NotFound
from docgen.services.status_service import JobTracker, format_seconds, ingest_tracker
from docgen.core.models import IngestJob


class Clock:
    def __init__(self):
        self.now = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def jobs(clock):
    return ingest_tracker(clock)


FILE_ID = "9d3b2c1a-0f4e-4a5b-8c7d-6e5f4a3b2c1d"


@pytest.mark.asyncio
async def test_create_then_get(jobs):
    await jobs.create(FILE_ID, message="queued", file_id=FILE_ID, s3_key="documents/x/a.pdf")
    record = await jobs.get(FILE_ID)
    assert record.status == "queued"
    assert record.progress == 0
    assert record.current_step == "initializing"
    assert record.to_json_dict()["fileId"] == FILE_ID


@pytest.mark.asyncio
async def test_get_unknown_raises(jobs):
    with pytest.raises(NotFound):
        await jobs.get(FILE_ID)


@pytest.mark.asyncio
async def test_progress_never_decreases(jobs):
    await jobs.create(FILE_ID, message="queued", file_id=FILE_ID)
    await jobs.update(FILE_ID, step="chunking_text", progress=50)
    record = await jobs.update(FILE_ID, progress=30, message="late event")
    assert record.progress == 50
    assert record.message == "late event"
    record = await jobs.update(FILE_ID, progress=250)
    assert record.progress == 100


@pytest.mark.asyncio
async def test_started_at_stamped_once(jobs, clock):
    await jobs.create(FILE_ID, message="queued", file_id=FILE_ID)
    first = await jobs.update(FILE_ID, progress=5)
    clock.advance(10)
    second = await jobs.update(FILE_ID, progress=10)
    assert first.started_at == second.started_at
    assert second.updated_at > first.updated_at


@pytest.mark.asyncio
async def test_terminal_records_are_frozen(jobs):
    await jobs.create(FILE_ID, message="queued", file_id=FILE_ID)
    await jobs.mark_completed(FILE_ID, message="done", chunks_processed=4)
    await jobs.update(FILE_ID, progress=10, step="extracting_text")
    await jobs.mark_failed(FILE_ID, RuntimeError("late failure"), "storing_vectors")

    record = await jobs.get(FILE_ID)
    assert record.status == "completed"
    assert record.progress == 100
    assert record.current_step == "completed"
    assert record.chunks_processed == 4
    assert record.error is None


@pytest.mark.asyncio
async def test_locks_are_released_once_a_job_finishes(jobs):
    other = "1a2b3c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d"
    await jobs.create(FILE_ID, message="queued", file_id=FILE_ID)
    await jobs.create(other, message="queued", file_id=other)
    await jobs.update(FILE_ID, progress=10, step="extracting_text")
    await jobs.update(other, progress=10, step="extracting_text")

    await jobs.mark_completed(FILE_ID, message="done")
    await jobs.mark_failed(other, RuntimeError("boom"), "storing_vectors")
    await jobs.update(FILE_ID, progress=50)

    assert FILE_ID not in jobs._locks
    assert other not in jobs._locks


@pytest.mark.asyncio
async def test_mark_failed_records_step_and_kind(jobs):
    from docgen.core.errors import PasswordProtected

    await jobs.create(FILE_ID, message="queued", file_id=FILE_ID)
    await jobs.update(FILE_ID, step="extracting_text", progress=10)
    record = await jobs.mark_failed(FILE_ID, PasswordProtected(), "extracting_text")

    assert record.status == "failed"
    assert record.current_step == "extracting_text"
    assert record.error_kind == "PasswordProtected"
    assert "password" in record.error.lower()
    assert record.message.startswith("Failed: ")
    assert record.failed_at is not None


@pytest.mark.asyncio
async def test_processing_records_get_timing_and_stale_flag(jobs, clock, monkeypatch):
    from docgen.core.config import settings

    monkeypatch.setattr(settings, "JOB_STALE_AFTER_SECONDS", 60)
    await jobs.create(FILE_ID, message="queued", file_id=FILE_ID)
    await jobs.update(FILE_ID, progress=25)
    clock.advance(20)

    record = await jobs.get(FILE_ID)
    assert record.elapsed_time == 20.0
    assert record.estimated_total_time == 80.0
    assert record.estimated_time_remaining == 60.0
    assert record.stale is False

    clock.advance(120)
    assert (await jobs.get(FILE_ID)).stale is True


@pytest.mark.asyncio
async def test_records_survive_a_new_tracker(jobs, clock):
    """Status lives in the store, not in the tracker instance."""
    await jobs.create(FILE_ID, message="queued", file_id=FILE_ID)
    await jobs.update(FILE_ID, progress=40)
    other = JobTracker("ingest", IngestJob, clock)
    assert (await other.get(FILE_ID)).progress == 40


def test_format_seconds():
    assert format_seconds(12.3456) == "12.35s"
