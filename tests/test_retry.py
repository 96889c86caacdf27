"""Tests for transient-error classification and bounded retries."""

import httpx
import pytest
from botocore.exceptions import ClientError

from docgen.core.errors import InvalidInput, LlmUnavailable, RateLimited, StorageFailure
from docgen.core.retry import call_with_retry, is_transient


def _status_error(code):
    request = httpx.Request("POST", "http://upstream.test/api")
    return httpx.HTTPStatusError("boom", request=request, response=httpx.Response(code, request=request))


def test_is_transient_classification():
    assert is_transient(httpx.ConnectError("refused"))
    assert is_transient(httpx.ReadTimeout("slow"))
    assert is_transient(_status_error(429))
    assert is_transient(_status_error(503))
    assert is_transient(RateLimited())
    assert not is_transient(_status_error(400))
    assert not is_transient(_status_error(404))
    assert not is_transient(ValueError("bad"))
    assert not is_transient(InvalidInput("bad"))


def test_s3_throttling_is_transient():
    slow = ClientError({"Error": {"Code": "SlowDown", "Message": "slow"}}, "PutObject")
    denied = ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutObject")
    assert is_transient(slow)
    assert not is_transient(denied)


class Flaky:
    def __init__(self, failures, error=None, result="ok"):
        self.failures = failures
        self.error = error or httpx.ConnectError("refused")
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_retries_transient_then_succeeds():
    fn = Flaky(failures=2)
    out = await call_with_retry(fn, unavailable=LlmUnavailable, what="completion", attempts=3, max_wait=0)
    assert out == "ok"
    assert fn.calls == 3


@pytest.mark.asyncio
async def test_exhausted_retries_raise_unavailable():
    fn = Flaky(failures=10)
    with pytest.raises(LlmUnavailable) as exc:
        await call_with_retry(fn, unavailable=LlmUnavailable, what="completion", attempts=3, max_wait=0)
    assert fn.calls == 3
    assert isinstance(exc.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_permanent_failure_is_not_retried():
    fn = Flaky(failures=10, error=_status_error(400))
    with pytest.raises(StorageFailure):
        await call_with_retry(fn, unavailable=StorageFailure, what="put", attempts=3, max_wait=0)
    assert fn.calls == 1


@pytest.mark.asyncio
async def test_domain_errors_pass_through():
    fn = Flaky(failures=10, error=InvalidInput("no such bucket"))
    with pytest.raises(InvalidInput):
        await call_with_retry(fn, unavailable=StorageFailure, what="put", attempts=3, max_wait=0)
    assert fn.calls == 1
