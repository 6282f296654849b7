from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Union

import httpx

from kiosk.app.translation.errors import ErrorKind


@dataclass(frozen=True)
class AttemptOk:
    response: httpx.Response


@dataclass(frozen=True)
class RetryableFailure:
    kind: ErrorKind
    reason: str
    response: httpx.Response | None = None


@dataclass(frozen=True)
class TerminalFailure:
    kind: ErrorKind
    reason: str
    response: httpx.Response | None = None


AttemptOutcome = Union[AttemptOk, RetryableFailure, TerminalFailure]


@dataclass
class RetryReport:
    outcome: AttemptOutcome
    attempts: int
    delays: list[float] = field(default_factory=list)


def classify_response(response: httpx.Response) -> AttemptOutcome:
    status = response.status_code
    if 200 <= status < 300:
        return AttemptOk(response=response)
    if status == 429 or status >= 500:
        return RetryableFailure(kind=ErrorKind.SERVICE, reason=str(status), response=response)
    return TerminalFailure(kind=ErrorKind.SERVICE, reason=str(status), response=response)


def classify_exception(exc: Exception) -> AttemptOutcome:
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return RetryableFailure(kind=ErrorKind.NETWORK, reason="timeout")
    return RetryableFailure(kind=ErrorKind.NETWORK, reason=f"transport:{type(exc).__name__}")


async def run_with_retry(
    send: Callable[[], Awaitable[httpx.Response]],
    max_attempts: int,
    base_delay_seconds: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Callable[[int, RetryableFailure, float], None] | None = None,
) -> RetryReport:
    """Call ``send`` until it succeeds, fails terminally, or attempts run out.

    The delay before attempt ``n + 1`` is ``base_delay_seconds * n``. Only
    transport errors, timeouts, 429 and 5xx are retried. ``send`` is expected
    to enforce its own deadline and raise :class:`asyncio.TimeoutError` when
    it passes. Cancelling the calling task aborts both the in-flight request
    and the backoff sleep.
    """
    attempts_allowed = max(1, max_attempts)
    delays: list[float] = []
    attempt = 0

    while True:
        attempt += 1
        try:
            response = await send()
        except (httpx.RequestError, asyncio.TimeoutError) as exc:
            outcome = classify_exception(exc)
        else:
            outcome = classify_response(response)

        if not isinstance(outcome, RetryableFailure) or attempt >= attempts_allowed:
            return RetryReport(outcome=outcome, attempts=attempt, delays=delays)

        delay = max(0.0, base_delay_seconds) * attempt
        if on_retry is not None:
            on_retry(attempt, outcome, delay)
        delays.append(delay)
        await sleep(delay)
