"""Fixed-schedule retry for non-streaming upstream calls."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

import httpx

logger = logging.getLogger("voicerelay")

DEFAULT_BACKOFF_SCHEDULE: tuple[float, ...] = (0.0, 0.4, 1.2)


class AttemptOutcome(str, enum.Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class RetryAttempt:
    """Bookkeeping for one call within a ``RetryController.run`` invocation."""

    index: int
    delay: float
    outcome: AttemptOutcome
    status_code: Optional[int] = None
    detail: Optional[str] = None


@dataclass
class RetryResult:
    attempts: list[RetryAttempt] = field(default_factory=list)
    response: Optional[httpx.Response] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].outcome is AttemptOutcome.SUCCESS


def classify_status(status_code: int) -> AttemptOutcome:
    """Map an HTTP status to an attempt outcome."""
    if 200 <= status_code < 300:
        return AttemptOutcome.SUCCESS
    if status_code >= 500:
        return AttemptOutcome.RETRYABLE
    return AttemptOutcome.FATAL


class RetryController:
    """Runs a call up to ``len(schedule)`` times.

    ``schedule[i]`` is the delay awaited before attempt ``i``; the first
    entry is never slept on. Server faults and transport errors are retried,
    any other failure status stops immediately.
    """

    def __init__(
        self,
        schedule: Sequence[float] = DEFAULT_BACKOFF_SCHEDULE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not schedule:
            raise ValueError("retry schedule must contain at least one entry")
        self.schedule = tuple(float(delay) for delay in schedule)
        self._sleep = sleep

    async def run(
        self,
        call: Callable[[], Awaitable[httpx.Response]],
        *,
        label: str = "upstream",
    ) -> RetryResult:
        result = RetryResult()
        total = len(self.schedule)

        for index, delay in enumerate(self.schedule):
            if index > 0:
                logger.info(f"Retrying {label} in {delay:.2f}s (attempt {index + 1}/{total})")
                await self._sleep(delay)

            try:
                response = await call()
            except httpx.TransportError as exc:
                detail = f"{label} http error: {exc}"
                logger.warning(f"{label} attempt {index + 1}/{total} failed: {detail}")
                result.attempts.append(
                    RetryAttempt(index, delay, AttemptOutcome.RETRYABLE, detail=detail)
                )
                result.response = None
                result.detail = detail
                continue

            outcome = classify_status(response.status_code)
            if outcome is AttemptOutcome.SUCCESS:
                result.attempts.append(
                    RetryAttempt(index, delay, outcome, status_code=response.status_code)
                )
                result.response = response
                result.detail = None
                logger.info(f"{label} succeeded on attempt {index + 1}")
                return result

            detail = f"{label} error {response.status_code}: {response.text}"
            result.attempts.append(
                RetryAttempt(index, delay, outcome, status_code=response.status_code, detail=detail)
            )
            result.response = response
            result.detail = detail
            if outcome is AttemptOutcome.FATAL:
                logger.error(f"{label} attempt {index + 1}/{total} failed fatally: {detail}")
                return result
            logger.warning(f"{label} attempt {index + 1}/{total} failed: {detail}")

        logger.error(f"{label} exhausted all {total} attempts")
        return result
