"""Backoff policy and async retry runner for provider calls."""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from hearth.infra.error_types import (
    AgentRuntimeError,
    ErrorInfo,
    classify_error,
    is_retryable_error_kind,
)

T = TypeVar("T")

RetryCallback = Callable[[int, Exception, ErrorInfo, float], Awaitable[None] | None]
Sampler = Callable[[float, float], float]


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff, capped at `max_delay_ms`, with symmetric jitter."""

    max_attempts: int = 3
    base_delay_ms: int = 250
    max_delay_ms: int = 4_000
    backoff_multiplier: float = 2.0
    jitter_ratio: float = 0.15

    def allows_retry(self, attempt: int, info: ErrorInfo) -> bool:
        """True when `attempt` (1-based) failed with a retryable kind and budget remains."""
        return is_retryable_error_kind(info.kind) and attempt < max(1, self.max_attempts)

    def compute_delay_seconds(
        self,
        attempt: int,
        retry_after_seconds: float | None = None,
        rng: Sampler | None = None,
    ) -> float:
        """
        Seconds to wait after failed `attempt` (1-based).

        A positive provider `retry_after_seconds` wins over the backoff curve.
        `rng` replaces `random.uniform` for deterministic tests.
        """
        if retry_after_seconds and retry_after_seconds > 0:
            return retry_after_seconds

        exponent = max(1, attempt) - 1
        delay_ms = min(float(self.max_delay_ms), self.base_delay_ms * self.backoff_multiplier**exponent)
        if self.jitter_ratio > 0:
            spread = delay_ms * self.jitter_ratio
            delay_ms = (rng or random.uniform)(delay_ms - spread, delay_ms + spread)
        return max(0.0, delay_ms / 1000.0)


async def _attempt(operation: Callable[[], Awaitable[T]], timeout: float | None) -> T:
    if timeout is None:
        return await operation()
    try:
        return await asyncio.wait_for(operation(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise AgentRuntimeError(kind="timeout", message=f"Operation timed out after {timeout}s") from exc


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy | None = None,
    classify: Callable[[Exception], ErrorInfo] | None = None,
    on_retry: RetryCallback | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    timeout: float | None = None,
) -> T:
    """
    Await `operation()` until it succeeds or a failure is not worth retrying.

    Only transient_http, rate_limit and timeout kinds are retried. `timeout`
    bounds each attempt separately; an expired attempt is a timeout error.
    The last failure is re-raised unchanged.
    """
    policy = policy or RetryPolicy()
    classify = classify or classify_error

    for attempt in range(1, max(1, policy.max_attempts) + 1):
        try:
            return await _attempt(operation, timeout)
        except Exception as exc:
            info = classify(exc)
            if not policy.allows_retry(attempt, info):
                raise
            delay = policy.compute_delay_seconds(attempt, info.retry_after_seconds)
            if on_retry is not None:
                pending = on_retry(attempt, exc, info, delay)
                if asyncio.iscoroutine(pending):
                    await pending
            await sleep(delay)

    raise AssertionError("unreachable: the final attempt either returns or raises")
