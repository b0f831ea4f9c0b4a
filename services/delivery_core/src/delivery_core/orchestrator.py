"""Delivery orchestration: normalize, select, send, retry, fall back."""

import dataclasses
import logging
import threading
import time
from collections.abc import Callable

from pydantic import EmailStr, TypeAdapter, ValidationError

from notify_shared.enums import PHONE_CHANNELS, Channel, ErrorKind
from notify_shared.errors import (
    DeliveryValidationError,
    InternalDeliveryError,
    NotificationError,
)
from notify_shared.models import NotificationPayload
from notify_shared.phone import DEFAULT_FORMAT, PhoneFormat, require_phone

from delivery_core.config import DeliveryConfig
from delivery_core.cost import estimate_cost, is_priced
from delivery_core.providers import ProviderEntry, ProviderRegistry
from delivery_core.providers.base import DeliveryAttempt, DeliveryResult
from delivery_core.rate_limiter import RateLimiter
from delivery_core.renderer import render_payload

logger = logging.getLogger(__name__)

_EMAIL_ADAPTER = TypeAdapter(EmailStr)

RecipientResolver = Callable[[Channel, NotificationPayload], str]


class _Cancelled(Exception):
    pass


def compute_backoff(attempt: int, base: float, cap: float) -> float:
    """Delay before retry number *attempt* (1-based): base doubling, capped."""
    return min(base * 2 ** (attempt - 1), cap)


class Orchestrator:
    """Runs the fallback chain for one notification at a time.

    Stateless between calls apart from its collaborators, so one
    instance may be shared by every worker thread.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        config: DeliveryConfig,
        *,
        rate_limiter: RateLimiter | None = None,
        phone_format: PhoneFormat = DEFAULT_FORMAT,
        resolve_recipient: RecipientResolver | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._registry = registry
        self._config = config
        self._limiter = rate_limiter
        self._phone_format = phone_format
        self._resolve_recipient = resolve_recipient
        self._sleep = sleep

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def phone_format(self) -> PhoneFormat:
        return self._phone_format

    def deliver(
        self,
        channel: str,
        payload: NotificationPayload,
        cancel: threading.Event | None = None,
    ) -> DeliveryResult:
        """Deliver *payload* on *channel*, trying providers in order.

        Validation, exhaustion and cancellation are reported in the
        returned result.  Raises InternalDeliveryError on unexpected
        failures.
        """
        try:
            return self._deliver(channel, payload, cancel)
        except NotificationError:
            raise
        except Exception as exc:
            logger.exception(
                "Unexpected error during delivery", extra={"channel": str(channel)}
            )
            raise InternalDeliveryError(f"Internal delivery error: {exc}") from exc

    def verify_provider(
        self, channel: str, provider_id: str, payload: NotificationPayload
    ) -> DeliveryAttempt:
        """Send *payload* through exactly one provider, without fallback.

        Raises DeliveryValidationError for an invalid payload or a
        provider that does not serve *channel*, and KeyError for an
        unknown provider.
        """
        channel = self._channel(channel)
        entry = self._registry.get(provider_id)
        if entry.config.channel != channel:
            raise DeliveryValidationError(
                f"Provider {provider_id} does not serve channel {channel}"
            )
        prepared = self._prepare(channel, payload)
        return entry.adapter.send(entry.config, prepared)

    # -- internals --

    def _deliver(
        self,
        channel: str,
        payload: NotificationPayload,
        cancel: threading.Event | None,
    ) -> DeliveryResult:
        try:
            channel = self._channel(channel)
            prepared = self._prepare(channel, payload)
        except DeliveryValidationError as exc:
            logger.info(
                "Payload rejected before send",
                extra={"channel": str(channel), "reason": exc.message},
            )
            return DeliveryResult(
                success=False,
                channel=channel,
                recipient=payload.to,
                error_kind=ErrorKind.VALIDATION,
                error=exc.message,
            )

        log_ctx = {"channel": channel, "recipient": prepared.to}
        attempts: list[DeliveryAttempt] = []
        excluded: set[str] = set()

        try:
            while True:
                if cancel is not None and cancel.is_set():
                    raise _Cancelled
                entry = self._registry.next(channel, excluded)
                if entry is None:
                    break
                final = self._attempt_provider(entry, channel, prepared, attempts, cancel)
                if final.success:
                    result = DeliveryResult(
                        success=True,
                        channel=channel,
                        recipient=prepared.to,
                        provider_id=entry.provider_id,
                        message_id=final.message_id,
                        attempts=tuple(attempts),
                        cost=final.cost,
                        fallback_used=attempts[0].provider_id != entry.provider_id,
                    )
                    logger.info(
                        "Notification delivered",
                        extra={
                            **log_ctx,
                            "provider": entry.provider_id,
                            "message_id": final.message_id,
                            "attempts": len(attempts),
                            "fallback_used": result.fallback_used,
                        },
                    )
                    return result
                excluded.add(entry.provider_id)
        except _Cancelled:
            logger.info("Delivery cancelled", extra={**log_ctx, "attempts": len(attempts)})
            return DeliveryResult(
                success=False,
                channel=channel,
                recipient=prepared.to,
                error_kind=ErrorKind.CANCELLED,
                error="Delivery cancelled",
                attempts=tuple(attempts),
            )

        error = _exhaustion_message(channel, attempts)
        logger.error(
            "All providers failed", extra={**log_ctx, "attempts": len(attempts)}
        )
        return DeliveryResult(
            success=False,
            channel=channel,
            recipient=prepared.to,
            provider_id=attempts[-1].provider_id if attempts else None,
            error_kind=ErrorKind.EXHAUSTED,
            error=error,
            attempts=tuple(attempts),
        )

    def _attempt_provider(
        self,
        entry: ProviderEntry,
        channel: Channel,
        payload: NotificationPayload,
        attempts: list[DeliveryAttempt],
        cancel: threading.Event | None,
    ) -> DeliveryAttempt:
        """Send through one provider, retrying transient failures up to the cap."""
        cap = self._config.max_attempts_per_provider
        for number in range(1, cap + 1):
            if self._limiter is not None and not self._limiter.wait(
                entry.provider_id, cancel
            ):
                raise _Cancelled
            attempt = entry.adapter.send(entry.config, payload, attempt=number)
            if attempt.success and attempt.cost is None:
                attempt = dataclasses.replace(
                    attempt, cost=self._estimate(channel, entry)
                )
            attempts.append(attempt)

            if attempt.success or attempt.error_kind != ErrorKind.TRANSIENT:
                return attempt
            if number < cap:
                delay = compute_backoff(
                    number,
                    self._config.backoff_base_seconds,
                    self._config.backoff_max_seconds,
                )
                logger.info(
                    "Transient failure, retrying same provider",
                    extra={
                        "provider": entry.provider_id,
                        "attempt": number,
                        "backoff_seconds": delay,
                    },
                )
                self._pause(delay, cancel)
        return attempt

    def _pause(self, delay: float, cancel: threading.Event | None) -> None:
        if cancel is None:
            self._sleep(delay)
        elif cancel.wait(delay):
            raise _Cancelled

    def _estimate(self, channel: Channel, entry: ProviderEntry) -> float | None:
        if not is_priced(channel, entry.config.vendor):
            return None
        country = self._phone_format.iso_country if channel in PHONE_CHANNELS else None
        return estimate_cost(channel, entry.config.vendor, 1, country)

    def _channel(self, channel: str) -> Channel:
        try:
            return Channel(channel)
        except ValueError:
            raise DeliveryValidationError(f"Unknown channel: {channel!r}") from None

    def _prepare(self, channel: Channel, payload: NotificationPayload) -> NotificationPayload:
        """Resolve, validate and render the payload.  Pure apart from the resolver."""
        recipient = payload.to
        if self._resolve_recipient is not None:
            recipient = self._resolve_recipient(channel, payload)

        if channel in PHONE_CHANNELS:
            recipient = require_phone(recipient, self._phone_format)
        elif channel == Channel.EMAIL:
            try:
                recipient = str(_EMAIL_ADAPTER.validate_python(recipient.strip()))
            except ValidationError:
                raise DeliveryValidationError(
                    f"Invalid email address: {recipient!r}"
                ) from None
        elif not recipient.strip():
            raise DeliveryValidationError("Recipient is required")

        if not payload.content.strip() and not payload.template_id:
            raise DeliveryValidationError("Notification content is required")

        if recipient != payload.to:
            payload = payload.with_recipient(recipient)
        return render_payload(payload)


def _exhaustion_message(channel: Channel, attempts: list[DeliveryAttempt]) -> str:
    if not attempts:
        return f"No available providers for channel {channel}"
    steps = "; ".join(f"{a.provider_id}: {a.error}" for a in attempts)
    return f"All providers failed for channel {channel} ({steps})"
