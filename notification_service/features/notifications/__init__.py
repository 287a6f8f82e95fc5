"""Notification delivery pipeline (email, WhatsApp).

Every request, whether it arrives over HTTP or from RabbitMQ, goes through
the same steps:

    NotificationRecordBuilder -> AuditStore.create (pending) -> Dispatcher
        -> ProviderClient -> AuditStore.update (success | failed)

Architecture:
    - Models: NotificationRecord plus the channel, source and status enums
    - Events: NotificationEvent, the queue wire format
    - Dispatcher: validation, provider selection, retry and classification
    - Service: shared pipeline entry point for both ingress paths
    - Event Handlers: queue provenance and undecodable-payload auditing
    - Router: synchronous HTTP ingress plus audit queries

Example:
    ```python
    service = NotificationService(store, Dispatcher(store, registry.providers))
    result = await service.send(
        WhatsAppRequest(to="+5491112345678", message="hi"),
        source=NotificationSource.SYNC_API,
    )
    assert result.success
    ```
"""
