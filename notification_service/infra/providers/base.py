"""Base provider contract for outbound notification delivery.

Defines the contract every channel provider implements.

Usage:
    class MyProvider(BaseProviderClient):
        @property
        def provider_name(self) -> str:
            return "myprovider"

        async def _do_send(self, request) -> ProviderResult:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
import time
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable

if TYPE_CHECKING:
    from notification_service.features.notifications.models import NotificationChannel
    from notification_service.features.notifications.schemas import NotificationRequest

logger = logging.getLogger(__name__)

# Longest provider response body kept on a result
RESPONSE_BODY_LIMIT = 1000


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of a single provider call.

    Attributes:
        success: Whether the provider accepted the message
        provider: Provider name (maileroo, twilio, console, mock)
        status_code: Transport status code, when there is one
        response_body: Raw provider response (truncated)
        provider_message_id: Provider-assigned message id
        duration_ms: Time taken by the call
        metadata: Provider-specific details
    """

    success: bool
    provider: str
    status_code: int | None = None
    response_body: str | None = None
    provider_message_id: str | None = None
    duration_ms: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.response_body is not None and len(self.response_body) > RESPONSE_BODY_LIMIT:
            object.__setattr__(self, "response_body", self.response_body[:RESPONSE_BODY_LIMIT])

    @classmethod
    def success_result(
        cls,
        provider: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
        provider_message_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ProviderResult:
        return cls(
            success=True,
            provider=provider,
            status_code=status_code,
            response_body=response_body,
            provider_message_id=provider_message_id,
            metadata=metadata or {},
        )

    @classmethod
    def failure_result(
        cls,
        provider: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ProviderResult:
        return cls(
            success=False,
            provider=provider,
            status_code=status_code,
            response_body=response_body,
            metadata=metadata or {},
        )


@runtime_checkable
class ProviderClient(Protocol):
    """Protocol defining the provider interface.

    ``send`` reports provider-side rejection through ``ProviderResult.success``
    and may raise transport errors (``httpx.HTTPError``, ``TimeoutError``).
    """

    @property
    def provider_name(self) -> str: ...

    async def send(self, request: NotificationRequest) -> ProviderResult: ...


class BaseProviderClient(ABC):
    """Abstract base class for providers.

    Wraps ``_do_send`` with timing and logging. Exceptions are logged and
    re-raised unchanged: classifying them is the dispatcher's job.
    """

    channel: ClassVar[NotificationChannel]

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get the provider name."""
        ...

    @abstractmethod
    async def _do_send(self, request: NotificationRequest) -> ProviderResult:
        """Implement the actual sending logic."""
        ...

    async def send(self, request: NotificationRequest) -> ProviderResult:
        start_time = time.perf_counter()
        try:
            result = await self._do_send(request)
        except Exception as exc:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            logger.warning(
                f"{self.provider_name} send raised {type(exc).__name__}",
                extra={
                    "provider": self.provider_name,
                    "recipient": request.to,
                    "duration_ms": duration_ms,
                    "error": str(exc),
                },
            )
            raise

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        if result.duration_ms is None:
            object.__setattr__(result, "duration_ms", duration_ms)

        log = logger.info if result.success else logger.warning
        log(
            f"{self.provider_name} send {'accepted' if result.success else 'rejected'}",
            extra={
                "provider": self.provider_name,
                "recipient": request.to,
                "status_code": result.status_code,
                "duration_ms": duration_ms,
            },
        )
        return result

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        """Release provider resources (shared HTTP clients are closed by their owner)."""
        return None


__all__ = [
    "BaseProviderClient",
    "ProviderClient",
    "ProviderResult",
]
