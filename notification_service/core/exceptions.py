"""HTTP-facing exceptions, rendered as RFC 7807 Problem Details."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, ClassVar


class AppException(Exception):
    """Base application exception.

    Subclasses fix the status code and the default problem ``type`` and
    ``title``; call sites pass the human-readable ``detail`` and any
    extension members in ``extra``.

    Example:
        raise NotFoundException(
            detail="Notification record 0190d1b4-... not found",
            type="record-not-found",
            extra={"record_id": "0190d1b4-..."},
        )
    """

    status_code: ClassVar[int] = 500
    default_type: ClassVar[str] = "about:blank"
    default_title: ClassVar[str | None] = None

    def __init__(
        self,
        detail: str,
        type: str | None = None,
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.detail = detail
        self.type = type or self.default_type
        self.title = title or self.default_title or self._default_title(self.status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        try:
            return HTTPStatus(status_code).phrase
        except ValueError:
            return "Error"


class NotFoundException(AppException):
    status_code = 404
    default_type = "not-found"


class ValidationException(AppException):
    """Request-shape error detected before anything is dispatched.

    Example:
        raise ValidationException(detail="Field 'to' is required", extra={"field": "to"})
    """

    status_code = 400
    default_type = "validation-error"
    default_title = "Validation Error"


class ServiceUnavailableException(AppException):
    """A required backend (broker, database) is not available."""

    status_code = 503
    default_type = "service-unavailable"


class NotificationDeliveryException(AppException):
    """A synchronous dispatch ended in failure.

    The audit record already holds the failure; ``extra`` carries its id and
    the error kind so callers can correlate.
    """

    status_code = 500
    default_type = "notification-delivery-failed"
    default_title = "Notification Delivery Failed"
