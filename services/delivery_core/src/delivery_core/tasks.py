"""Celery tasks wrapping the orchestrator and worker pool."""

import logging
from typing import Any

from pydantic import ValidationError

from notify_shared.enums import Channel, ErrorKind
from notify_shared.errors import DeliveryValidationError
from notify_shared.models import NotificationPayload

from delivery_core.bootstrap import DeliveryServices
from delivery_core.celery import app
from delivery_core.pool import DispatchItem
from delivery_core.providers.base import DeliveryResult

logger = logging.getLogger(__name__)


@app.task(name="delivery_core.tasks.send_notification")
def send_notification(channel: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Deliver one notification and return the serialized DeliveryResult.

    A malformed payload dict raises pydantic.ValidationError and fails
    the task.
    """
    services: DeliveryServices = app.conf._services
    result = services.orchestrator.deliver(
        channel, NotificationPayload.model_validate(payload)
    )
    logger.info(
        "Task finished",
        extra={"channel": channel, "success": result.success, "provider": result.provider_id},
    )
    return result.to_dict()


@app.task(name="delivery_core.tasks.dispatch_batch")
def dispatch_batch(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Deliver a batch through the worker pool.

    Each item is ``{"channel": ..., "payload": {...}}``.  A malformed item
    yields a validation result at its own index; the rest still go out.
    """
    services: DeliveryServices = app.conf._services
    results: list[DeliveryResult | None] = [None] * len(items)
    accepted: list[tuple[int, DispatchItem]] = []
    for index, item in enumerate(items):
        try:
            accepted.append((index, _dispatch_item(item)))
        except DeliveryValidationError as exc:
            logger.warning(
                "Batch item rejected", extra={"index": index, "reason": exc.message}
            )
            results[index] = _rejected(item, exc)

    if accepted:
        dispatched = services.pool.dispatch([item for _, item in accepted])
        for (index, _), result in zip(accepted, dispatched):
            results[index] = result
    return [result.to_dict() for result in results]


def _dispatch_item(item: Any) -> DispatchItem:
    if not isinstance(item, dict) or "channel" not in item or "payload" not in item:
        raise DeliveryValidationError("Batch item needs 'channel' and 'payload'")
    try:
        channel = Channel(item["channel"])
    except ValueError:
        raise DeliveryValidationError(f"Unknown channel: {item['channel']!r}") from None
    try:
        payload = NotificationPayload.model_validate(item["payload"])
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) or "payload"
            for error in exc.errors()
        )
        raise DeliveryValidationError(f"Invalid payload: {fields}") from None
    return DispatchItem(channel=channel, payload=payload)


def _rejected(item: Any, exc: DeliveryValidationError) -> DeliveryResult:
    channel = item.get("channel", "") if isinstance(item, dict) else ""
    payload = item.get("payload") if isinstance(item, dict) else None
    recipient = payload.get("to", "") if isinstance(payload, dict) else ""
    return DeliveryResult(
        success=False,
        channel=channel,
        recipient=str(recipient),
        error_kind=ErrorKind.VALIDATION,
        error=exc.message,
    )
