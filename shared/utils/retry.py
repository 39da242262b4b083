"""
Backoff Executor — retries a fallible async call with exponential backoff
and jitter, built on tenacity.

Errors are classified first; auth, validation and malformed-response
failures are never retried. Retryable failures sleep
min(max_delay, base_delay * 2**attempt + jitter), capped again by the
delay the error itself suggests (e.g. a provider's Retry-After).
"""
import asyncio
import json
import random
import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

import httpx
import pydantic
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt
import structlog

logger = structlog.get_logger()

T = TypeVar("T")


class ErrorClass(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    EXTERNAL_SERVICE = "external_service"
    AUTH = "auth"
    VALIDATION = "validation"
    MALFORMED = "malformed"
    LOGIC = "logic"


class MalformedResponseError(ValueError):
    """Provider answered, but not in the shape we expected."""


@dataclass(frozen=True)
class ErrorClassification:
    error_class: ErrorClass
    retryable: bool
    suggested_delay: float | None = None  # seconds
    message: str = ""


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay: float = 1.0   # seconds
    max_delay: float = 15.0   # seconds, per sleep
    jitter: float = 1.0       # seconds, upper bound of uniform jitter


DEFAULT_POLICY = RetryPolicy()

# Suggested waits per class (seconds)
_SUGGESTED_DELAYS = {
    ErrorClass.NETWORK: 5.0,
    ErrorClass.TIMEOUT: 10.0,
    ErrorClass.RATE_LIMIT: 60.0,
    ErrorClass.EXTERNAL_SERVICE: 15.0,
}

_RETRYABLE = {
    ErrorClass.NETWORK,
    ErrorClass.TIMEOUT,
    ErrorClass.RATE_LIMIT,
    ErrorClass.EXTERNAL_SERVICE,
}


def _classified(error_class: ErrorClass, message: str, suggested: float | None = None) -> ErrorClassification:
    if suggested is None:
        suggested = _SUGGESTED_DELAYS.get(error_class)
    return ErrorClassification(
        error_class=error_class,
        retryable=error_class in _RETRYABLE,
        suggested_delay=suggested,
        message=message[:300],
    )


def parse_retry_after(value: str | None) -> float | None:
    """Retry-After is either delta-seconds or an HTTP date."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, when.timestamp() - time.time())


def classify_error(exc: BaseException) -> ErrorClassification:
    message = str(exc) or exc.__class__.__name__

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 429:
            retry_after = parse_retry_after(exc.response.headers.get("retry-after"))
            return _classified(ErrorClass.RATE_LIMIT, message, retry_after)
        if status in (401, 403):
            return _classified(ErrorClass.AUTH, message)
        if status >= 500:
            return _classified(ErrorClass.EXTERNAL_SERVICE, message)
        return _classified(ErrorClass.VALIDATION, message)

    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return _classified(ErrorClass.TIMEOUT, message)
    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return _classified(ErrorClass.NETWORK, message)
    if isinstance(exc, (MalformedResponseError, json.JSONDecodeError, pydantic.ValidationError)):
        return _classified(ErrorClass.MALFORMED, message)
    if isinstance(exc, ValueError):
        return _classified(ErrorClass.VALIDATION, message)

    # Unknown exception types: fall back to the message text
    lowered = message.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return _classified(ErrorClass.TIMEOUT, message)
    if "rate limit" in lowered or "429" in lowered or "too many requests" in lowered:
        return _classified(ErrorClass.RATE_LIMIT, message)
    if "401" in lowered or "403" in lowered or "unauthorized" in lowered or "forbidden" in lowered:
        return _classified(ErrorClass.AUTH, message)
    if "network" in lowered or "connection" in lowered or "econnreset" in lowered:
        return _classified(ErrorClass.NETWORK, message)
    if "500" in lowered or "502" in lowered or "503" in lowered or "504" in lowered:
        return _classified(ErrorClass.EXTERNAL_SERVICE, message)
    if "parse" in lowered or "json" in lowered:
        return _classified(ErrorClass.MALFORMED, message)
    if "invalid" in lowered or "validation" in lowered:
        return _classified(ErrorClass.VALIDATION, message)
    return _classified(ErrorClass.LOGIC, message)


def is_retryable(exc: BaseException) -> bool:
    return classify_error(exc).retryable


def backoff_delay(
    attempt: int,
    policy: RetryPolicy = DEFAULT_POLICY,
    suggested_delay: float | None = None,
    rng: Callable[[], float] = random.random,
) -> float:
    """Delay before the retry following the zero-based ``attempt``."""
    delay = min(policy.max_delay, policy.base_delay * (2 ** attempt) + rng() * policy.jitter)
    if suggested_delay is not None:
        delay = min(delay, suggested_delay)
    return delay


@dataclass
class RetryResult(Generic[T]):
    result: T | None = None
    error: BaseException | None = None
    attempts: int = 0
    classification: ErrorClassification | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retries(self) -> int:
        return max(0, self.attempts - 1)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> RetryResult[T]:
    """Run ``fn`` up to ``policy.max_retries + 1`` times.

    Never raises for failures of ``fn``; the terminal error and its
    classification are returned instead.
    """

    def _wait(retry_state) -> float:
        exc = retry_state.outcome.exception()
        suggested = classify_error(exc).suggested_delay if exc else None
        return backoff_delay(retry_state.attempt_number - 1, policy, suggested, rng)

    def _before_sleep(retry_state):
        exc = retry_state.outcome.exception()
        logger.debug(
            "retry_scheduled",
            attempt=retry_state.attempt_number,
            delay=round(retry_state.next_action.sleep, 2),
            error=str(exc)[:100],
        )

    attempts = 0
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(policy.max_retries + 1),
            wait=_wait,
            retry=retry_if_exception(is_retryable),
            sleep=sleep,
            before_sleep=_before_sleep,
            reraise=True,
        ):
            with attempt:
                attempts = attempt.retry_state.attempt_number
                result = await fn()
    except Exception as e:
        return RetryResult(error=e, attempts=attempts, classification=classify_error(e))

    return RetryResult(result=result, attempts=attempts)


async def with_retry_and_outcome(
    ledger,
    task: str,
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Like ``with_retry`` but records the outcome and re-raises on failure."""
    started = time.monotonic()
    outcome = await with_retry(fn, policy=policy, sleep=sleep)
    duration_ms = int((time.monotonic() - started) * 1000)

    if ledger is not None:
        ledger.record(
            task,
            success=outcome.ok,
            duration_ms=duration_ms,
            retries=outcome.retries,
            error_class=outcome.classification.error_class.value if outcome.classification else None,
            error=str(outcome.error) if outcome.error else None,
        )

    if outcome.error is not None:
        raise outcome.error
    return outcome.result
