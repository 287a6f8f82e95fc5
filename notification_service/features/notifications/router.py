"""API router for the notifications feature.

Delivery Endpoints:
- POST /notifications/email - Send an email synchronously
- POST /notifications/whatsapp - Send a WhatsApp message synchronously
- POST /notifications/send - Send through the channel named by ``type``
- POST /notifications/enqueue - Publish to RabbitMQ for asynchronous delivery

Audit Endpoints:
- GET /notifications/records - List audit records with filters
- GET /notifications/records/{record_id} - Get one audit record
- GET /notifications/stats - Record counts by outcome
- GET /notifications/health - Channel and backend status

Synchronous sends return 400 for request-shape errors (nothing is audited)
and 500 with ``record_id``/``error_kind`` when the audited dispatch fails.
"""

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID, uuid4

from fastapi import APIRouter, Query, status

from notification_service.core.exceptions import (
    NotFoundException,
    NotificationDeliveryException,
    ServiceUnavailableException,
    ValidationException,
)
from notification_service.features.notifications.dependencies import (
    AuditStoreDep,
    DatabaseDep,
    NotificationServiceDep,
    ProviderRegistryDep,
    PublisherDep,
)
from notification_service.features.notifications.dispatcher import DispatchResult
from notification_service.features.notifications.events import NotificationEvent
from notification_service.features.notifications.models import (
    DeliveryStatus,
    NotificationChannel,
    NotificationSource,
)
from notification_service.features.notifications.schemas import (
    ChannelHealth,
    NotificationEnqueueResponse,
    NotificationHealthResponse,
    NotificationRecordListResponse,
    NotificationRecordResponse,
    NotificationRequest,
    NotificationSendResponse,
    NotificationStatsResponse,
    SendEmailPayload,
    SendNotificationPayload,
    SendWhatsAppPayload,
)
from notification_service.features.notifications.service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

SUPPORTED_CHANNELS = (NotificationChannel.EMAIL, NotificationChannel.WHATSAPP)


def _require(value: str | None, field: str) -> None:
    if not value or not value.strip():
        raise ValidationException(detail=f"Field '{field}' is required", extra={"field": field})


def _event_from_payload(payload: SendNotificationPayload, notification_id: str | None = None) -> NotificationEvent:
    channel = NotificationChannel.parse(payload.type)
    if channel not in SUPPORTED_CHANNELS:
        raise ValidationException(
            detail=f"Unsupported notification type: {payload.type}",
            type="unsupported-notification-type",
            extra={"field": "type", "supported": [str(c) for c in SUPPORTED_CHANNELS]},
        )
    _require(payload.to, "to")
    return NotificationEvent(
        type=channel.value,
        to=payload.to or "",
        subject=payload.subject,
        html_body=payload.html_body,
        text_body=payload.text_body,
        message=payload.message,
        media_url=payload.media_url,
        from_address=payload.from_address,
        reply_to=payload.reply_to,
        headers=payload.headers,
        metadata=payload.metadata,
        notification_id=notification_id,
    )


async def _deliver(
    service: NotificationService,
    request: NotificationRequest,
    endpoint: str,
    success_message: str,
) -> NotificationSendResponse:
    result: DispatchResult = await service.send(
        request,
        source=NotificationSource.SYNC_API,
        provenance={"Endpoint": endpoint},
    )
    if not result.success:
        raise NotificationDeliveryException(
            detail=result.message or "Notification delivery failed",
            extra={
                "record_id": str(result.record_id) if result.record_id else None,
                "error_kind": str(result.error_kind) if result.error_kind else None,
            },
        )
    return NotificationSendResponse(
        message=success_message,
        record_id=result.record_id,
        recipient=request.to,
        attempts=result.attempts,
    )


# ============================================================================
# Delivery Endpoints
# ============================================================================


@router.post(
    "/email",
    response_model=NotificationSendResponse,
    summary="Send an email",
    responses={400: {"description": "Missing recipient, subject or body"}, 500: {"description": "Delivery failed"}},
)
async def send_email(payload: SendEmailPayload, service: NotificationServiceDep) -> NotificationSendResponse:
    """Send an email synchronously and audit the attempt."""
    _require(payload.to, "to")
    _require(payload.subject, "subject")
    if not (payload.html_body or payload.text_body):
        raise ValidationException(
            detail="Either 'html_body' or 'text_body' is required",
            extra={"field": "html_body"},
        )
    return await _deliver(service, payload.to_request(), "POST /notifications/email", "Email sent successfully")


@router.post(
    "/whatsapp",
    response_model=NotificationSendResponse,
    summary="Send a WhatsApp message",
    responses={400: {"description": "Missing recipient or message"}, 500: {"description": "Delivery failed"}},
)
async def send_whatsapp(payload: SendWhatsAppPayload, service: NotificationServiceDep) -> NotificationSendResponse:
    _require(payload.to, "to")
    _require(payload.message, "message")
    return await _deliver(
        service, payload.to_request(), "POST /notifications/whatsapp", "WhatsApp message sent successfully"
    )


@router.post(
    "/send",
    response_model=NotificationSendResponse,
    summary="Send through the channel named by type",
    responses={400: {"description": "Unsupported type or missing recipient"}, 500: {"description": "Delivery failed"}},
)
async def send_notification(
    payload: SendNotificationPayload,
    service: NotificationServiceDep,
) -> NotificationSendResponse:
    event = _event_from_payload(payload)
    return await _deliver(service, event.to_request(), "POST /notifications/send", "Notification sent successfully")


@router.post(
    "/enqueue",
    response_model=NotificationEnqueueResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue a notification for asynchronous delivery",
    responses={400: {"description": "Unsupported type or missing recipient"}, 503: {"description": "Messaging disabled"}},
)
async def enqueue_notification(
    payload: SendNotificationPayload,
    publisher: PublisherDep,
) -> NotificationEnqueueResponse:
    if publisher is None or not publisher.is_started:
        raise ServiceUnavailableException(detail="Messaging is disabled; notifications cannot be queued")
    event = _event_from_payload(payload, notification_id=str(uuid4()))
    routing_key = await publisher.publish(event)
    return NotificationEnqueueResponse(notification_id=event.notification_id or "", routing_key=routing_key)


# ============================================================================
# Audit Endpoints
# ============================================================================


@router.get("/records", response_model=NotificationRecordListResponse, summary="List audit records")
async def list_records(
    store: AuditStoreDep,
    recipient: Annotated[str | None, Query(description="Exact recipient")] = None,
    channel: Annotated[NotificationChannel | None, Query(description="Delivery channel")] = None,
    failed_only: Annotated[bool, Query(description="Only failed deliveries")] = False,
    start: Annotated[datetime | None, Query(description="Created at or after")] = None,
    end: Annotated[datetime | None, Query(description="Created at or before")] = None,
    skip: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> NotificationRecordListResponse:
    result = await store.search(
        recipient=recipient,
        channel=channel,
        status=DeliveryStatus.FAILED if failed_only else None,
        start=start,
        end=end,
        limit=limit,
        offset=skip,
    )
    logger.debug("records: %d/%d (skip=%d, limit=%d)", len(result.items), result.total, skip, limit)
    return NotificationRecordListResponse(
        items=[NotificationRecordResponse.model_validate(record) for record in result.items],
        skip=skip,
        limit=limit,
        count=result.total,
    )


@router.get(
    "/records/{record_id}",
    response_model=NotificationRecordResponse,
    summary="Get an audit record",
    responses={404: {"description": "Record not found"}},
)
async def get_record(record_id: UUID, store: AuditStoreDep) -> NotificationRecordResponse:
    record = await store.get(record_id)
    if record is None:
        raise NotFoundException(
            detail=f"Notification record {record_id} not found",
            type="record-not-found",
            extra={"record_id": str(record_id)},
        )
    return NotificationRecordResponse.model_validate(record)


@router.get("/stats", response_model=NotificationStatsResponse, summary="Record counts by outcome")
async def get_stats(store: AuditStoreDep) -> NotificationStatsResponse:
    return NotificationStatsResponse(
        total=await store.count_total(),
        success=await store.count_success(),
        failed=await store.count_failed(),
        pending=await store.count_pending(),
    )


@router.get("/health", response_model=NotificationHealthResponse, summary="Pipeline health")
async def get_health(
    registry: ProviderRegistryDep,
    database: DatabaseDep,
    publisher: PublisherDep,
) -> NotificationHealthResponse:
    channels = []
    for channel in SUPPORTED_CHANNELS:
        provider = registry.get(channel) if registry is not None else None
        channels.append(
            ChannelHealth(
                channel=channel,
                enabled=provider is not None,
                provider=provider.provider_name if provider is not None else None,
            )
        )

    database_ok = await database.health_check() if database is not None else False
    broker_ok = await publisher.ping() if publisher is not None else None

    healthy = database_ok and broker_ok is not False and any(c.enabled for c in channels)
    return NotificationHealthResponse(
        status="healthy" if healthy else "degraded",
        channels=channels,
        database=database_ok,
        broker=broker_ok,
    )


__all__ = ["router"]
