"""Tests for the polling client and the HTTP client wrapper."""

import httpx
import pytest

from docgen.client import DocGenClient, JobFailed, PollingClient


class Statuses:
    def __init__(self, *statuses):
        self.statuses = list(statuses)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]


class Sleeps:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.mark.asyncio
async def test_backs_off_geometrically_until_terminal():
    status = Statuses(*[{"status": "processing", "progress": p} for p in (10, 20, 30, 40, 50)], {"status": "completed"})
    sleep = Sleeps()
    poller = PollingClient(status, initial_interval=1, max_interval=5, multiplier=2, max_attempts=10, sleep=sleep)

    result = await poller.wait()

    assert result == {"status": "completed"}
    assert sleep.delays == [1, 2, 4, 5, 5]
    assert status.calls == 6


@pytest.mark.asyncio
async def test_failed_is_terminal():
    poller = PollingClient(Statuses({"status": "failed", "error": "boom"}), sleep=Sleeps())
    assert (await poller.wait())["status"] == "failed"


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts():
    status = Statuses({"status": "processing"})
    sleep = Sleeps()
    poller = PollingClient(status, initial_interval=0.5, max_interval=1, multiplier=2, max_attempts=4, sleep=sleep)

    with pytest.raises(TimeoutError):
        await poller.wait()
    assert status.calls == 4
    assert sleep.delays == [0.5, 1, 1]


def test_rejects_bad_intervals():
    with pytest.raises(ValueError):
        PollingClient(Statuses({}), initial_interval=0)
    with pytest.raises(ValueError):
        PollingClient(Statuses({}), initial_interval=5, max_interval=1)
    with pytest.raises(ValueError):
        PollingClient(Statuses({}), multiplier=0.5)


def _client(handler, **polling):
    client = DocGenClient("http://api.test", sleep=Sleeps(), **polling)
    client._client = lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api.test")
    return client


@pytest.mark.asyncio
async def test_wait_for_generation_polls_status_endpoint():
    answers = iter([
        {"status": "processing", "progress": 25},
        {"status": "completed", "progress": 100, "downloadUrl": "https://storage.test/x"},
    ])

    def handler(request):
        assert request.url.path == "/generation-status/gen-1"
        return httpx.Response(200, json=next(answers))

    result = await _client(handler).wait_for_generation("gen-1")
    assert result["downloadUrl"] == "https://storage.test/x"


@pytest.mark.asyncio
async def test_wait_for_ingestion_raises_on_failure():
    def handler(request):
        return httpx.Response(200, json={"status": "failed", "error": "PDF is password protected and cannot be read"})

    with pytest.raises(JobFailed, match="password"):
        await _client(handler).wait_for_ingestion("file-1")


@pytest.mark.asyncio
async def test_generate_sends_camel_case_body():
    bodies = []

    def handler(request):
        bodies.append(request.read())
        return httpx.Response(202, json={"generationId": "g", "status": "processing"})

    await _client(handler).generate("checksheet", ["d1"], promptId="quick-simple", queryText=None)
    assert b'"promptId"' in bodies[0]
    assert b"queryText" not in bodies[0]
