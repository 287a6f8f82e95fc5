"""Outcome types of a retried operation."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RetryStatistics:
    """What happened across the attempts of one retried call.

    ``delays`` and ``exceptions`` have one entry per retry, so a call that
    succeeded first time leaves both empty.
    """

    start_time: float = 0.0
    end_time: float = 0.0
    delays: list[float] = field(default_factory=list)
    exceptions: list[str] = field(default_factory=list)

    @property
    def attempts(self) -> int:
        """Retries performed (not counting the first call)."""
        return len(self.delays)

    @property
    def total_delay(self) -> float:
        return sum(self.delays)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def record(self, exc: Exception, delay: float) -> None:
        self.exceptions.append(type(exc).__name__)
        self.delays.append(delay)


class RetryError(Exception):
    """Every allowed attempt failed with a retryable exception.

    The last exception is chained as ``__cause__`` and kept on
    ``last_exception``.
    """

    def __init__(
        self,
        operation: str,
        last_exception: Exception,
        attempts: int,
        statistics: RetryStatistics | None = None,
    ) -> None:
        self.operation = operation
        self.last_exception = last_exception
        self.attempts = attempts
        self.statistics = statistics or RetryStatistics()
        super().__init__(f"{operation} failed after {attempts} attempts: {last_exception}")
