from __future__ import annotations

from notification_service.utils.retry.decorator import retry
from notification_service.utils.retry.exceptions import RetryError, RetryStatistics
from notification_service.utils.retry.strategies import RetryStrategy

__all__ = ["retry", "RetryError", "RetryStatistics", "RetryStrategy"]
