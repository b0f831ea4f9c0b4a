"""Delivery status tracking, normalized across vendors."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from notify_shared.enums import DeliveryStatus
from notify_shared.errors import ProviderError

from delivery_core.providers import ProviderEntry, ProviderRegistry
from delivery_core.providers.base import DeliveryResult

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class StatusTransition:
    provider_id: str
    message_id: str
    previous: DeliveryStatus
    current: DeliveryStatus
    vendor_status: str | None = None
    checked_at: datetime = field(default_factory=_utcnow)

    @property
    def changed(self) -> bool:
        return self.previous != self.current

    @property
    def terminal(self) -> bool:
        return self.current in (DeliveryStatus.READ, DeliveryStatus.FAILED)

    def to_dict(self) -> dict[str, object]:
        return {
            "provider": self.provider_id,
            "messageId": self.message_id,
            "previous": self.previous,
            "status": self.current,
            "vendorStatus": self.vendor_status,
            "changed": self.changed,
            "checkedAt": self.checked_at.isoformat(),
        }


def advance(previous: DeliveryStatus, observed: DeliveryStatus) -> DeliveryStatus:
    """Apply an observed status without ever moving backwards.

    ``failed`` is only reachable from ``sent``; ``delivered`` may still
    become ``read``.
    """
    if previous in (DeliveryStatus.READ, DeliveryStatus.FAILED):
        return previous
    if previous == DeliveryStatus.DELIVERED:
        return DeliveryStatus.READ if observed == DeliveryStatus.READ else previous
    return observed


class DeliveryTracker:
    """Resolves vendor message ids to the four-value status vocabulary.

    Advisory only: unknown providers, vendors without tracking and
    vendor errors all leave the status where it was.
    """

    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry

    def poll(
        self,
        provider_id: str,
        message_id: str,
        previous: DeliveryStatus = DeliveryStatus.SENT,
    ) -> StatusTransition:
        entry = self._lookup(provider_id)
        if entry is None or not entry.adapter.tracks_status:
            return StatusTransition(provider_id, message_id, previous, previous)

        try:
            vendor_status = entry.adapter.fetch_status(entry.config, message_id)
        except ProviderError as exc:
            logger.warning(
                "Status poll failed",
                extra={
                    "provider": provider_id,
                    "message_id": message_id,
                    "reason": exc.message,
                },
            )
            return StatusTransition(provider_id, message_id, previous, previous)
        return self._transition(entry, provider_id, message_id, previous, vendor_status)

    def apply_callback(
        self,
        provider_id: str,
        message_id: str,
        vendor_status: str,
        previous: DeliveryStatus = DeliveryStatus.SENT,
    ) -> StatusTransition:
        """Normalize a status pushed by a vendor webhook."""
        entry = self._lookup(provider_id)
        if entry is None:
            return StatusTransition(
                provider_id, message_id, previous, previous, vendor_status
            )
        return self._transition(entry, provider_id, message_id, previous, vendor_status)

    def track(self, result: DeliveryResult) -> StatusTransition | None:
        """Poll the status of a successful result; None for failed ones."""
        if not result.success or result.provider_id is None or result.message_id is None:
            return None
        return self.poll(result.provider_id, result.message_id)

    def _lookup(self, provider_id: str) -> ProviderEntry | None:
        try:
            return self._registry.get(provider_id)
        except KeyError:
            return None

    def _transition(
        self,
        entry: ProviderEntry,
        provider_id: str,
        message_id: str,
        previous: DeliveryStatus,
        vendor_status: str | None,
    ) -> StatusTransition:
        observed = entry.adapter.normalize_status(vendor_status)
        current = advance(previous, observed) if observed is not None else previous
        if current != previous:
            logger.info(
                "Delivery status changed",
                extra={
                    "provider": provider_id,
                    "message_id": message_id,
                    "previous": previous,
                    "status": current,
                },
            )
        return StatusTransition(
            provider_id, message_id, previous, current, vendor_status
        )
