"""Retry and backoff for BambooHR requests.

The loop in :func:`run_with_retry` only performs I/O and sleeps; whether
to retry, return or raise is decided by :func:`decide`, which is pure and
tested on its own.
"""

from __future__ import annotations

import asyncio
import logging
import random as _random
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Optional, Union

import httpx

from .exceptions import BambooHRError

logger = logging.getLogger(__name__)

# Whole seconds at the start of Retry-After; any fraction or suffix is ignored
LEADING_INT = re.compile(r"(-?\d+)")

# Lower-cased fragments of transport error messages that mark a failure
# as transient
RETRYABLE_ERROR_MARKERS = (
    "network error",
    "timeout",
    "timed out",
    "connection",
    "econnreset",
    "enotfound",
    "econnrefused",
    "etimedout",
    "socket hang up",
)


@dataclass(frozen=True)
class RetryPolicy:
    max_retry_attempts: int = 3
    base_delay_ms: float = 1_000
    max_delay_ms: float = 30_000

    @property
    def total_attempts(self) -> int:
        return self.max_retry_attempts + 1


@dataclass(frozen=True)
class RetryAfter:
    """Sleep for ``delay_ms`` and try again."""

    delay_ms: float
    reason: str


@dataclass(frozen=True)
class ReturnResponse:
    """Hand the response to the caller as-is."""

    response: httpx.Response


@dataclass(frozen=True)
class RaiseError:
    """Give up and propagate ``error``."""

    error: BaseException


Decision = Union[RetryAfter, ReturnResponse, RaiseError]


def clamp_delay(delay_ms: float, policy: RetryPolicy) -> float:
    return min(max(delay_ms, 0.0), policy.max_delay_ms)


def backoff_delay(
    attempt: int, policy: RetryPolicy, random: Callable[[], float] = _random.random
) -> float:
    """Exponential backoff for 0-based *attempt* with symmetric jitter.

    The jitter spreads concurrent retries by up to +/-12.5% of the
    exponential value.
    """
    delay = policy.base_delay_ms * (2**attempt)
    jitter = delay * 0.25 * (random() - 0.5)
    return clamp_delay(delay + jitter, policy)


def retry_after_delay(
    header: Optional[str], policy: RetryPolicy, now: Optional[float] = None
) -> float:
    """Delay in milliseconds for a 429 response.

    ``Retry-After`` is read as whole seconds first, then as an HTTP date.
    Without a usable header the delay is twice the base delay.
    """
    if header:
        value = header.strip()
        seconds = LEADING_INT.match(value)
        if seconds:
            return clamp_delay(int(seconds.group(1)) * 1000, policy)

        try:
            retry_at = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            retry_at = None
        if retry_at is not None:
            if retry_at.tzinfo is None:
                retry_at = retry_at.replace(tzinfo=timezone.utc)
            current = now if now is not None else time.time()
            wait_seconds = (retry_at - datetime.fromtimestamp(current, tz=timezone.utc)).total_seconds()
            return clamp_delay(wait_seconds * 1000, policy)

    return clamp_delay(policy.base_delay_ms * 2, policy)


def is_retryable_error(error: BaseException) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in RETRYABLE_ERROR_MARKERS)


def decide(
    outcome: Union[httpx.Response, BaseException],
    attempt: int,
    policy: RetryPolicy,
    *,
    random: Callable[[], float] = _random.random,
    now: Optional[float] = None,
) -> Decision:
    """Classify the outcome of attempt number *attempt* (0-based)."""
    final = attempt >= policy.max_retry_attempts

    if isinstance(outcome, BaseException):
        if final or not is_retryable_error(outcome):
            return RaiseError(outcome)
        return RetryAfter(backoff_delay(attempt, policy, random), f"network error: {outcome}")

    status = outcome.status_code
    if final:
        return ReturnResponse(outcome)

    if status == 429:
        return RetryAfter(
            retry_after_delay(outcome.headers.get("Retry-After"), policy, now),
            "rate limited (429)",
        )

    if 500 <= status < 600:
        return RetryAfter(backoff_delay(attempt, policy, random), f"server error ({status})")

    return ReturnResponse(outcome)


async def run_with_retry(
    send: Callable[[], Awaitable[httpx.Response]],
    policy: RetryPolicy,
    *,
    endpoint: str = "",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    random: Callable[[], float] = _random.random,
) -> httpx.Response:
    """Call *send* until it yields a final response or a final error.

    Only :class:`BambooHRError` raised by *send* takes part in retrying;
    anything else is a bug and propagates immediately.
    """
    attempt = 0
    while True:
        try:
            outcome: Union[httpx.Response, BambooHRError] = await send()
        except BambooHRError as exc:
            outcome = exc

        decision = decide(outcome, attempt, policy, random=random)

        if isinstance(decision, ReturnResponse):
            return decision.response
        if isinstance(decision, RaiseError):
            raise decision.error

        logger.warning(
            "Retrying %s after %s, attempt %d/%d, waiting %.0fms",
            endpoint,
            decision.reason,
            attempt + 1,
            policy.total_attempts,
            decision.delay_ms,
        )
        await sleep(decision.delay_ms / 1000)
        attempt += 1
