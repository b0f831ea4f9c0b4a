"""Twilio SMS and WhatsApp adapters."""

from typing import Any

from notify_shared.enums import Channel, DeliveryStatus
from notify_shared.errors import TransientProviderError
from notify_shared.models import NotificationPayload, ProviderConfig

from delivery_core.providers.base import HttpProviderAdapter, SendReceipt, compose_text

_STATUS_MAP = {
    "accepted": DeliveryStatus.SENT,
    "scheduled": DeliveryStatus.SENT,
    "queued": DeliveryStatus.SENT,
    "sending": DeliveryStatus.SENT,
    "sent": DeliveryStatus.SENT,
    "delivered": DeliveryStatus.DELIVERED,
    "read": DeliveryStatus.READ,
    "failed": DeliveryStatus.FAILED,
    "undelivered": DeliveryStatus.FAILED,
    "canceled": DeliveryStatus.FAILED,
}


class _TwilioAdapter(HttpProviderAdapter):
    required = ("account_sid", "auth_token", "from")
    tracks_status = True
    status_map = _STATUS_MAP

    def _address(self, phone: str) -> str:
        return phone

    def _messages_url(self, config: ProviderConfig) -> str:
        base = config.options.get(
            "base_url", "https://api.twilio.com/2010-04-01"
        ).rstrip("/")
        return f"{base}/Accounts/{config.credential('account_sid')}/Messages"

    def _auth(self, config: ProviderConfig) -> tuple[str, str]:
        return (config.credential("account_sid"), config.credential("auth_token"))

    def _send(
        self, config: ProviderConfig, payload: NotificationPayload
    ) -> SendReceipt:
        response = self._request(
            config,
            "POST",
            f"{self._messages_url(config)}.json",
            auth=self._auth(config),
            data={
                "From": config.options["from"],
                "To": self._address(payload.to),
                "Body": compose_text(payload, bold_subject=self.channel == Channel.WHATSAPP),
            },
        )
        body = self._json(config, response)
        if not body.get("sid"):
            raise TransientProviderError(
                "Twilio response had no message sid", provider_id=config.provider_id
            )
        return SendReceipt(message_id=str(body["sid"]), cost=_price(body))

    def fetch_status(self, config: ProviderConfig, message_id: str) -> str:
        response = self._request(
            config,
            "GET",
            f"{self._messages_url(config)}/{message_id}.json",
            auth=self._auth(config),
        )
        return str(self._json(config, response).get("status", ""))


def _price(body: dict[str, Any]) -> float | None:
    """Twilio reports price as a negative decimal string, or null while queued."""
    price = body.get("price")
    if price in (None, ""):
        return None
    try:
        return abs(float(price))
    except (TypeError, ValueError):
        return None


class TwilioSmsAdapter(_TwilioAdapter):
    channel = Channel.SMS
    vendor = "twilio"


class TwilioWhatsAppAdapter(_TwilioAdapter):
    channel = Channel.WHATSAPP
    vendor = "twilio"

    def _address(self, phone: str) -> str:
        return f"whatsapp:{phone}"
