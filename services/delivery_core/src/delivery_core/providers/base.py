"""Provider adapter interface and delivery result types."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar

import httpx

from notify_shared.enums import Channel, CostTier, DeliveryStatus, ErrorKind
from notify_shared.errors import (
    ExhaustionError,
    PermanentProviderError,
    ProviderError,
    TransientProviderError,
    error_for_kind,
)
from notify_shared.models import NotificationPayload, ProviderConfig

logger = logging.getLogger(__name__)

_PERMANENT_STATUS_CODES = frozenset({400, 401, 403, 404, 422})
_ERROR_DETAIL_LIMIT = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class SendReceipt:
    """What a vendor returns for an accepted message."""

    message_id: str
    cost: float | None = None


@dataclass(frozen=True, slots=True)
class DeliveryAttempt:
    """Record of one adapter invocation against one provider."""

    provider_id: str
    success: bool
    attempt: int = 1
    message_id: str | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    cost: float | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider_id,
            "success": self.success,
            "attempt": self.attempt,
            "message_id": self.message_id,
            "error_kind": self.error_kind,
            "error": self.error,
            "cost": self.cost,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Final outcome of delivering one payload on one channel.

    ``attempts`` lists every adapter invocation in chronological order,
    including intra-provider retries.
    """

    success: bool
    channel: Channel
    recipient: str
    provider_id: str | None = None
    message_id: str | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    attempts: tuple[DeliveryAttempt, ...] = ()
    cost: float | None = None
    fallback_used: bool = False
    timestamp: datetime = field(default_factory=_utcnow)

    def raise_for_error(self) -> None:
        """Raise the NotificationError subclass matching ``error_kind``."""
        if self.success or self.error_kind is None:
            return
        message = self.error or self.error_kind
        if self.error_kind == ErrorKind.EXHAUSTED:
            raise ExhaustionError(message, attempts=self.attempts)
        raise error_for_kind(self.error_kind)(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "channel": self.channel,
            "recipient": self.recipient,
            "provider": self.provider_id,
            "message_id": self.message_id,
            "error_kind": self.error_kind,
            "error": self.error,
            "attempts": [attempt.to_dict() for attempt in self.attempts],
            "cost": self.cost,
            "fallback_used": self.fallback_used,
            "timestamp": self.timestamp.isoformat(),
        }


class ProviderAdapter(ABC):
    """Base class for every vendor integration.

    Subclasses implement ``_send`` and raise TransientProviderError or
    PermanentProviderError on failure.  ``send`` turns each invocation
    into exactly one DeliveryAttempt.
    """

    channel: ClassVar[Channel]
    vendor: ClassVar[str]
    required: ClassVar[tuple[str, ...]] = ()
    cost_tier: ClassVar[CostTier] = CostTier.PAID
    limitations: ClassVar[str | None] = None
    supports_templates: ClassVar[bool] = False
    tracks_status: ClassVar[bool] = False
    status_map: ClassVar[Mapping[str, DeliveryStatus]] = {}

    def is_configured(self, config: ProviderConfig) -> bool:
        return not config.missing(self.required)

    def is_available(self, config: ProviderConfig) -> bool:
        return config.enabled and self.is_configured(config)

    def send(
        self,
        config: ProviderConfig,
        payload: NotificationPayload,
        *,
        attempt: int = 1,
    ) -> DeliveryAttempt:
        log_ctx = {
            "provider": config.provider_id,
            "recipient": payload.to,
            "attempt": attempt,
        }
        try:
            missing = config.missing(self.required)
            if missing:
                raise PermanentProviderError(
                    f"Missing configuration: {', '.join(missing)}",
                    provider_id=config.provider_id,
                )
            if (
                payload.template_id
                and not self.supports_templates
                and not payload.content.strip()
            ):
                raise PermanentProviderError(
                    "Vendor has no native templates",
                    provider_id=config.provider_id,
                )
            receipt = self._send(config, payload)
        except ProviderError as exc:
            logger.warning(
                "Provider send failed",
                extra={**log_ctx, "error_kind": exc.kind, "reason": exc.message},
            )
            return DeliveryAttempt(
                provider_id=config.provider_id,
                success=False,
                attempt=attempt,
                error_kind=exc.kind,
                error=exc.message,
            )

        logger.info(
            "Provider accepted message",
            extra={**log_ctx, "message_id": receipt.message_id},
        )
        return DeliveryAttempt(
            provider_id=config.provider_id,
            success=True,
            attempt=attempt,
            message_id=receipt.message_id,
            cost=receipt.cost,
        )

    @abstractmethod
    def _send(
        self, config: ProviderConfig, payload: NotificationPayload
    ) -> SendReceipt:
        """Deliver *payload* and return the vendor receipt."""

    def probe_status(self, config: ProviderConfig) -> str:
        """Cheap liveness check for dashboards; never raises."""
        return "ready" if self.is_configured(config) else "not_configured"

    def fetch_status(self, config: ProviderConfig, message_id: str) -> str:
        """Return the vendor's raw status string for *message_id*."""
        raise NotImplementedError(f"{self.vendor} does not support status polling")

    def normalize_status(self, vendor_status: str | None) -> DeliveryStatus | None:
        if not vendor_status:
            return None
        return self.status_map.get(vendor_status.lower())


class HttpProviderAdapter(ProviderAdapter):
    """Adapter base for vendors reached over HTTP.

    Maps transport errors, 429 and 5xx to transient failures and
    recipient/credential rejections to permanent ones.
    """

    def __init__(
        self, http_client: httpx.Client | None = None, timeout: float = 10.0
    ) -> None:
        self._http = http_client or httpx.Client()
        self._timeout = timeout

    def _request(
        self, config: ProviderConfig, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        provider_id = config.provider_id
        try:
            response = self._http.request(method, url, timeout=self._timeout, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransientProviderError(
                f"Request timed out: {exc}", provider_id=provider_id
            ) from exc
        except httpx.TransportError as exc:
            raise TransientProviderError(
                f"Connection error: {exc}", provider_id=provider_id
            ) from exc

        code = response.status_code
        if code == 429 or code >= 500:
            raise TransientProviderError(
                f"HTTP {code}: {_detail(response)}",
                provider_id=provider_id,
                status_code=code,
            )
        if code >= 400:
            # Unlisted 4xx codes are still vendor rejections of this request
            message = f"HTTP {code}: {_detail(response)}"
            if code not in _PERMANENT_STATUS_CODES:
                message = f"Unexpected {message}"
            raise PermanentProviderError(
                message, provider_id=provider_id, status_code=code
            )
        return response

    def _json(self, config: ProviderConfig, response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise TransientProviderError(
                "Malformed response body", provider_id=config.provider_id
            ) from exc
        if not isinstance(body, dict):
            raise TransientProviderError(
                "Unexpected response shape", provider_id=config.provider_id
            )
        return body


def _detail(response: httpx.Response) -> str:
    return response.text[:_ERROR_DETAIL_LIMIT]


def compose_text(payload: NotificationPayload, *, bold_subject: bool = False) -> str:
    """Plain-text body with the subject as a leading title line."""
    if not payload.subject:
        return payload.content
    title = f"*{payload.subject}*" if bold_subject else payload.subject
    return f"{title}\n\n{payload.content}"


def phone_digits(phone: str) -> str:
    """Canonical phone without the leading '+'."""
    return phone.lstrip("+")
