"""Dispatch-and-audit state machine.

``Dispatcher.dispatch`` takes a record that is already persisted as
``pending`` and drives it to exactly one terminal update::

    validate -> select provider -> send (under the retry policy) -> classify -> update

Every outcome is returned as a ``DispatchResult``. Audit store failures
escape as-is; a cancelled send is audited as ``cancelled`` before the
``CancelledError`` is re-raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
import logging
import time
from typing import TYPE_CHECKING
from uuid import UUID

from notification_service.core.database.base import utcnow
from notification_service.core.database.exceptions import NotFoundError
from notification_service.features.notifications.metrics import (
    channel_label,
    notification_dispatch_errors_total,
    notification_dispatch_total,
    notification_provider_attempts_total,
    notification_provider_duration_seconds,
)
from notification_service.features.notifications.models import (
    DeliveryStatus,
    NotificationChannel,
    NotificationRecord,
)
from notification_service.features.notifications.schemas import (
    EmailRequest,
    NotificationRequest,
    UnsupportedChannelRequest,
    WhatsAppRequest,
)
from notification_service.utils.retry import RetryStrategy

if TYPE_CHECKING:
    from notification_service.core.settings import DispatchSettings
    from notification_service.features.notifications.repository import AuditStore
    from notification_service.infra.providers import ProviderClient, ProviderResult

logger = logging.getLogger(__name__)

RECIPIENT_EMPTY = "Recipient is empty"
EMAIL_CONTENT_EMPTY = "Email content is empty"
MESSAGE_EMPTY = "Message is empty"


class ErrorKind(StrEnum):
    """Why a dispatch failed."""

    VALIDATION = "validation"
    UNSUPPORTED_CHANNEL = "unsupported_channel"
    PROVIDER_FAILURE = "provider_failure"
    TRANSPORT = "transport"
    DESERIALIZATION = "deserialization"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of one dispatch.

    Attributes:
        outcome: success or failed (never pending)
        error_kind: Failure classification, None on success
        message: Error message written to the record, None on success
        record_id: Audit record id
        attempts: Provider attempts made (0 when no provider was called)
        status_code: Last transport status code reported by the provider
    """

    outcome: DeliveryStatus
    error_kind: ErrorKind | None = None
    message: str | None = None
    record_id: UUID | None = None
    attempts: int = 0
    status_code: int | None = None

    @property
    def success(self) -> bool:
        return self.outcome == DeliveryStatus.SUCCESS


def validate_request(request: NotificationRequest) -> str | None:
    """Return the validation error for ``request``, or None when it may be sent."""
    if not (request.to or "").strip():
        return RECIPIENT_EMPTY
    match request:
        case EmailRequest():
            if not (request.html_body or request.text_body):
                return EMAIL_CONTENT_EMPTY
        case WhatsAppRequest():
            if not request.message:
                return MESSAGE_EMPTY
        case UnsupportedChannelRequest():
            pass
    return None


def requested_type(request: NotificationRequest) -> str:
    if isinstance(request, UnsupportedChannelRequest):
        return request.requested_type
    return request.channel.value


def retry_strategy_from_settings(settings: DispatchSettings) -> RetryStrategy:
    """Build the dispatcher's retry policy."""
    return RetryStrategy(
        max_attempts=settings.max_attempts,
        initial_delay=settings.initial_delay,
        max_delay=settings.max_delay,
        exponential_base=settings.exponential_base,
        jitter=settings.jitter,
    )


class Dispatcher:
    """Channel-agnostic dispatcher.

    Args:
        store: Audit store receiving the terminal update
        providers: Provider per channel; a missing channel is unsupported
        retry_strategy: Retry policy for provider failures and transport
            errors (defaults to a single attempt)
        sleep: Awaitable used for backoff delays
    """

    def __init__(
        self,
        store: AuditStore,
        providers: Mapping[NotificationChannel, ProviderClient],
        retry_strategy: RetryStrategy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._providers = dict(providers)
        self._retry = retry_strategy or RetryStrategy(max_attempts=1)
        self._sleep = sleep

    @property
    def retry_strategy(self) -> RetryStrategy:
        return self._retry

    def provider_for(self, channel: NotificationChannel | None) -> ProviderClient | None:
        if channel is None:
            return None
        return self._providers.get(channel)

    async def dispatch(self, record: NotificationRecord, request: NotificationRequest) -> DispatchResult:
        """Send ``request`` and record the outcome on ``record``."""
        provider = self.provider_for(request.channel)

        if isinstance(request, UnsupportedChannelRequest) or provider is None:
            message = f"Unsupported notification type: {requested_type(request)}"
            logger.warning(
                "Unsupported notification type",
                extra={"record_id": str(record.id), "requested_type": requested_type(request)},
            )
            return await self._fail(record, ErrorKind.UNSUPPORTED_CHANNEL, message, attempts=0)

        error = validate_request(request)
        if error is not None:
            logger.warning(
                "Notification failed validation",
                extra={"record_id": str(record.id), "channel": str(request.channel), "error": error},
            )
            return await self._fail(record, ErrorKind.VALIDATION, error, attempts=0)

        return await self._send(record, request, provider)

    async def _send(
        self,
        record: NotificationRecord,
        request: NotificationRequest,
        provider: ProviderClient,
    ) -> DispatchResult:
        attempt = 1
        error: Exception | None = None
        try:
            while True:
                notification_provider_attempts_total.labels(
                    provider=provider.provider_name, retry=str(attempt > 1).lower()
                ).inc()
                started = time.perf_counter()
                try:
                    result = await provider.send(request)
                except Exception as exc:
                    notification_provider_duration_seconds.labels(
                        provider=provider.provider_name, outcome="error"
                    ).observe(time.perf_counter() - started)
                    if self._retry.has_attempts_left(attempt) and self._retry.should_retry(exc):
                        await self._backoff(record, provider, attempt, reason=type(exc).__name__)
                        attempt += 1
                        continue
                    error = exc
                    break

                notification_provider_duration_seconds.labels(
                    provider=provider.provider_name, outcome="success" if result.success else "failure"
                ).observe(time.perf_counter() - started)
                if result.success or not self._retry.has_attempts_left(attempt):
                    break
                await self._backoff(record, provider, attempt, reason="provider failure")
                attempt += 1
        except asyncio.CancelledError:
            await self._fail_cancelled(record, provider, attempt)
            raise

        if error is not None:
            return await self._fail_transport(record, provider, error, attempt)
        if result.success:
            return await self._succeed(record, provider, result, attempt)
        return await self._fail_provider(record, provider, result, attempt)

    async def _backoff(
        self,
        record: NotificationRecord,
        provider: ProviderClient,
        attempt: int,
        *,
        reason: str,
    ) -> None:
        delay = self._retry.calculate_delay(attempt - 1)
        record.attempt_count = attempt + 1
        logger.info(
            "Retrying provider call",
            extra={
                "record_id": str(record.id),
                "provider": provider.provider_name,
                "attempt": attempt,
                "next_attempt": attempt + 1,
                "delay": round(delay, 3),
                "reason": reason,
            },
        )
        await self._sleep(delay)

    # ─────────────────────────────────────────────────────
    # Terminal transitions (each ends in exactly one update)
    # ─────────────────────────────────────────────────────

    async def _succeed(
        self,
        record: NotificationRecord,
        provider: ProviderClient,
        result: ProviderResult,
        attempts: int,
    ) -> DispatchResult:
        record.mark_success(
            utcnow(),
            Provider=provider.provider_name,
            StatusCode=result.status_code,
            Response=result.response_body or None,
            ProviderMessageId=result.provider_message_id,
        )
        await self._persist(record)
        logger.info(
            "Notification delivered",
            extra={
                "record_id": str(record.id),
                "channel": channel_label(record.channel),
                "provider": provider.provider_name,
                "attempts": attempts,
            },
        )
        notification_dispatch_total.labels(
            channel=channel_label(record.channel), source=str(record.source), status="success"
        ).inc()
        return DispatchResult(
            outcome=DeliveryStatus.SUCCESS,
            record_id=record.id,
            attempts=attempts,
            status_code=result.status_code,
        )

    async def _fail_provider(
        self,
        record: NotificationRecord,
        provider: ProviderClient,
        result: ProviderResult,
        attempts: int,
    ) -> DispatchResult:
        message = f"{provider.provider_name} returned failure"
        return await self._fail(
            record,
            ErrorKind.PROVIDER_FAILURE,
            message,
            attempts=attempts,
            status_code=result.status_code,
            Provider=provider.provider_name,
            StatusCode=result.status_code,
            Response=result.response_body or None,
        )

    async def _fail_transport(
        self,
        record: NotificationRecord,
        provider: ProviderClient,
        exc: Exception,
        attempts: int,
    ) -> DispatchResult:
        message = f"{type(exc).__name__}: {exc}"
        return await self._fail(
            record,
            ErrorKind.TRANSPORT,
            message,
            attempts=attempts,
            Provider=provider.provider_name,
            ExceptionType=type(exc).__name__,
        )

    async def _fail_cancelled(
        self,
        record: NotificationRecord,
        provider: ProviderClient,
        attempts: int,
    ) -> DispatchResult:
        """Audit a send interrupted by task cancellation; the caller re-raises."""
        return await self._fail(
            record,
            ErrorKind.CANCELLED,
            "CancelledError: dispatch cancelled before the provider answered",
            attempts=attempts,
            Provider=provider.provider_name,
            ExceptionType="CancelledError",
        )

    async def _fail(
        self,
        record: NotificationRecord,
        kind: ErrorKind,
        message: str,
        *,
        attempts: int,
        status_code: int | None = None,
        **metadata: object,
    ) -> DispatchResult:
        record.mark_failed(message, utcnow(), **metadata)
        await self._persist(record)
        logger.warning(
            "Notification delivery failed",
            extra={
                "record_id": str(record.id),
                "channel": channel_label(record.channel),
                "error_kind": kind.value,
                "error": message,
                "attempts": attempts,
            },
        )
        notification_dispatch_total.labels(
            channel=channel_label(record.channel), source=str(record.source), status="failed"
        ).inc()
        notification_dispatch_errors_total.labels(
            channel=channel_label(record.channel), error_kind=kind.value
        ).inc()
        return DispatchResult(
            outcome=DeliveryStatus.FAILED,
            error_kind=kind,
            message=message,
            record_id=record.id,
            attempts=attempts,
            status_code=status_code,
        )

    async def _persist(self, record: NotificationRecord) -> None:
        # Shielded: a cancellation arriving mid-write must not lose the terminal update
        if not await asyncio.shield(self._store.update(record.id, record)):
            logger.error("Audit record vanished before its final update", extra={"record_id": str(record.id)})
            raise NotFoundError("NotificationRecord", record.id)


__all__ = [
    "DispatchResult",
    "Dispatcher",
    "ErrorKind",
    "retry_strategy_from_settings",
    "validate_request",
]
