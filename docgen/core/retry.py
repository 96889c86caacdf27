"""Bounded retries for upstream calls (embeddings, LLM, vector store, S3)."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx
from botocore.exceptions import ClientError, ConnectionError as BotoConnectionError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

from docgen.core.config import settings
from docgen.core.errors import DocGenError, TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUSES = {408, 429, 500, 502, 503, 504}
_RETRYABLE_S3_CODES = {"SlowDown", "RequestTimeout", "InternalError", "ServiceUnavailable", "ThrottlingException"}


def is_transient(exc: BaseException) -> bool:
    """True for timeouts, dropped connections and 408/429/5xx answers."""
    if isinstance(exc, TransientError):
        return True
    if isinstance(exc, DocGenError):
        return False
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUSES
    if isinstance(exc, BotoConnectionError):
        return True
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code") in _RETRYABLE_S3_CODES
    # openai.APIStatusError and friends expose the HTTP status directly
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status in RETRYABLE_STATUSES
    return type(exc).__name__ in {"APITimeoutError", "APIConnectionError"}


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "retrying %s (attempt %d) after %s",
        getattr(retry_state.fn, "__name__", "call"),
        retry_state.attempt_number,
        exc,
    )


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    unavailable: type[DocGenError],
    what: str,
    attempts: int | None = None,
    max_wait: float | None = None,
) -> T:
    """Run `fn` with exponential backoff plus jitter.

    Transient failures are retried up to `attempts` times. Anything that is
    still failing afterwards, or fails permanently, is raised as `unavailable`
    chained to the last cause. DocGenError subclasses that are not transient
    pass through untouched.
    """
    attempts = attempts or settings.RETRY_ATTEMPTS
    max_wait = settings.RETRY_MAX_WAIT_SECONDS if max_wait is None else max_wait
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_random_exponential(multiplier=0.5, max=max_wait),
        retry=retry_if_exception(is_transient),
        before_sleep=_log_retry,
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                return await fn()
    except RetryError as exc:  # pragma: no cover - reraise=True makes this unreachable
        raise unavailable(f"{what} failed: {exc}") from exc
    except DocGenError as exc:
        if isinstance(exc, unavailable) or not is_transient(exc):
            raise
        raise unavailable(f"{what} failed after {attempts} attempts: {exc.message}") from exc
    except Exception as exc:
        if is_transient(exc):
            raise unavailable(f"{what} failed after {attempts} attempts: {exc}") from exc
        raise unavailable(f"{what} failed: {exc}") from exc
    raise unavailable(f"{what} failed")  # pragma: no cover
