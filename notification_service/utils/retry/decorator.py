from __future__ import annotations

import asyncio
from functools import wraps
import logging
import time
from typing import TYPE_CHECKING, ParamSpec, TypeVar

from notification_service.infra.metrics import retry_attempts_total, retry_exhausted_total

from .exceptions import RetryError, RetryStatistics
from .strategies import RetryStrategy

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def retry(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    retry_if: Callable[[Exception], bool] | None = None,
    on_retry: Callable[[Exception, int], None] | None = None,
    *,
    strategy: RetryStrategy | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Retry an async callable with exponential backoff.

    Broker and database connects use this while the dependency comes up.
    Pass ``strategy`` to share a policy object; the individual keyword
    arguments are ignored in that case.

    Raises:
        RetryError: When every attempt failed with a retryable exception.
            Non-retryable exceptions propagate unchanged.
    """
    policy = strategy or RetryStrategy(
        max_attempts=max_attempts,
        initial_delay=initial_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
        exceptions=exceptions,
        retry_if=retry_if,
    )

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        operation = func.__name__

        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            statistics = RetryStatistics(start_time=time.monotonic())
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    if not policy.should_retry(exc):
                        raise

                    if not policy.has_attempts_left(attempt):
                        statistics.end_time = time.monotonic()
                        retry_exhausted_total.labels(function=operation).inc()
                        logger.error(
                            f"{operation} failed after {attempt} attempts",
                            extra={
                                "function": operation,
                                "attempts": attempt,
                                "last_exception": str(exc),
                                "total_delay": round(statistics.total_delay, 3),
                            },
                        )
                        raise RetryError(operation, exc, attempt, statistics) from exc

                    delay = policy.calculate_delay(attempt - 1)
                    statistics.record(exc, delay)
                    retry_attempts_total.labels(function=operation).inc()
                    logger.warning(
                        f"Retrying {operation} in {delay:.2f}s (attempt {attempt}/{policy.max_attempts})",
                        extra={"function": operation, "attempt": attempt, "delay": delay, "exception": str(exc)},
                    )
                    if on_retry:
                        on_retry(exc, attempt)

                    await sleep(delay)
                    attempt += 1

        return async_wrapper

    return decorator
