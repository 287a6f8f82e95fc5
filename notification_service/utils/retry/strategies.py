from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(slots=True)
class RetryStrategy:
    """Bounded exponential backoff policy.

    ``max_attempts`` counts the first call, so ``max_attempts=1`` means no
    retry at all. Delays grow as ``initial_delay * exponential_base**n`` and
    never exceed ``max_delay``, jitter included.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_range: tuple[float, float] = (0.5, 1.5)
    exceptions: tuple[type[Exception], ...] = (Exception,)
    retry_if: Callable[[Exception], bool] | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 1

    def should_retry(self, exception: Exception) -> bool:
        if self.retry_if is not None:
            return self.retry_if(exception)
        return isinstance(exception, self.exceptions)

    def has_attempts_left(self, attempt: int) -> bool:
        """Whether another call may follow the 1-based ``attempt``."""
        return attempt < self.max_attempts

    def calculate_delay(self, attempt: int) -> float:
        """Delay before the retry following the 0-based ``attempt``."""
        delay = self.initial_delay * self.exponential_base**attempt
        if self.jitter:
            low, high = self.jitter_range
            delay *= random.uniform(low, high)
        return min(delay, self.max_delay)
